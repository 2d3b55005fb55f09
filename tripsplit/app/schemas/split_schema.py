"""
schemas/split_schema.py — Marshmallow schema for the equal split preview.

IMPORTANT: Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate, validates

from tripsplit.app.errors import ErrorCode


# ── Shared monetary amount validator ──────────────────────────────────────
#
# Same rule as the expense amount in settlement_schema.py. Defined here
# rather than imported so each schema file stays self-contained.
# ──────────────────────────────────────────────────────────────────────────

MAX_AMOUNT = Decimal("1000000000")

_amount_range = validate.Range(
    max=MAX_AMOUNT,
    error="Amount must not exceed {max}.",
)


def _validate_expense_amount(value: Decimal) -> None:
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


class EqualSplitSchema(Schema):
    """
    POST /splits/equal

    Field rules:
      amount          : required, Decimal >= 0 and <= MAX_AMOUNT, max 2 decimal places
      participant_ids : required, non-empty, no duplicates
      payer_id        : required. Receives the leftover cents when the
                        amount does not divide evenly. Need not be in
                        participant_ids.
    """

    amount = fields.Decimal(
        required=True,
        validate=[_amount_range, _validate_expense_amount],
    )

    participant_ids = fields.List(fields.Str(), required=True)

    payer_id = fields.Str(required=True)

    @validates("participant_ids")
    def validate_participant_ids(self, value: list, **kwargs) -> None:
        if not value:
            raise ValidationError(ErrorCode.EMPTY_SPLIT_AMONG)
        if len(set(value)) != len(value):
            raise ValidationError(ErrorCode.DUPLICATE_SPLIT_PARTICIPANT)
