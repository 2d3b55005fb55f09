"""
schemas/settlement_schema.py — Marshmallow schemas for the settlement snapshot.

Validation responsibility:
  - This file:
      - Field types, lengths, split_mode values, decimal precision of
        expense amounts (at most 2 dp, never negative), MAX_AMOUNT upper
        bound on amounts and shares
      - SPLITS_SENT_FOR_EQUAL_MODE       (400) — request shape rule
      - SPLIT_AMONG_SENT_FOR_CUSTOM_MODE (400) — request shape rule
      - EMPTY_SPLIT_AMONG                (400) — equal mode needs someone to split with
      - DUPLICATE_PARTICIPANT            (400) — participant ids must be unique
      - DUPLICATE_SPLIT_PARTICIPANT      (400) — one share per participant per expense
  - services/balance_service.py:
      - Unknown payer / split participant ids. These are NOT rejected: they
        are ignored for balances and reported as UNKNOWN_PARTICIPANT warnings.
      - Shares that do not add up to the amount. Reported as
        SPLIT_SUM_MISMATCH warnings, never rejected.

IMPORTANT: Inherits from marshmallow.Schema directly, so schemas can be
           loaded in unit tests and in the CLI without an app context.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates,
    validates_schema,
)

from tripsplit.app.errors import ErrorCode
from tripsplit.app.models.expense import SplitMode


# ── Shared validators ──────────────────────────────────────────────────────

# Keeps balance sums well inside the 28-digit Decimal context.
MAX_AMOUNT = Decimal("1000000000")

_amount_range = validate.Range(
    max=MAX_AMOUNT,
    error="Amount must not exceed {max}.",
)


def _validate_expense_amount(value: Decimal) -> None:
    """
    Expense totals are currency values entered by a person:
      - Must not be negative. Zero is allowed.
      - Must have at most 2 decimal places.

    The error handler detects INVALID_AMOUNT_PRECISION by matching the
    raised ValidationError message to the known ErrorCode constant.
    """
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")

    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_share_amount(value: Decimal) -> None:
    """
    Shares are often derived by division (amount / count), so any precision
    is accepted. Only negative shares are rejected.
    """
    if value < Decimal("0"):
        raise ValidationError("Share amount must not be negative.")


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _has_duplicates(values: list) -> bool:
    return len(set(values)) != len(values)


# ── Sub-schemas ────────────────────────────────────────────────────────────

class ParticipantInputSchema(Schema):
    """One entry in the `participants` array."""

    id = fields.Str(
        required=True,
        validate=_validate_non_empty_after_trim,
    )

    # Blank names are allowed here; the engine displays them as "Unknown".
    display_name = fields.Str(
        load_default="",
        validate=validate.Length(max=100),
    )


class SplitInputSchema(Schema):
    """
    One entry in an expense's `splits` array (split_mode='custom').

    Whether participant_id belongs to the group is NOT checked here.
    """

    participant_id = fields.Str(
        required=True,
        validate=_validate_non_empty_after_trim,
    )

    share_amount = fields.Decimal(
        required=True,
        validate=[_amount_range, _validate_share_amount],
    )


class ExpenseInputSchema(Schema):
    """
    One entry in the `expenses` array.

    Split mode behaviour:
      equal  → split_among is required and non-empty; splits must be absent.
               Shares are computed by split_service.compute_equal_splits().
      custom → splits is optional (an expense may have zero splits);
               split_among must be absent. Shares are used exactly as sent.
    """

    id = fields.Str(load_default=None, allow_none=True)

    description = fields.Str(
        load_default="",
        validate=validate.Length(max=255),
    )

    paid_by_id = fields.Str(
        required=True,
        validate=_validate_non_empty_after_trim,
    )

    amount = fields.Decimal(
        required=True,
        validate=[_amount_range, _validate_expense_amount],
    )

    split_mode = fields.Str(
        load_default=SplitMode.CUSTOM.value,
        validate=validate.OneOf(
            [m.value for m in SplitMode],
            error=ErrorCode.INVALID_SPLIT_MODE,
        ),
    )

    splits = fields.List(
        fields.Nested(SplitInputSchema),
        load_default=None,
    )

    split_among = fields.List(
        fields.Str(validate=_validate_non_empty_after_trim),
        load_default=None,
    )

    @validates_schema
    def validate_split_shape(self, data: dict, **kwargs) -> None:
        if data.get("split_mode") == SplitMode.EQUAL.value:
            if data.get("splits") is not None:
                raise ValidationError(
                    ErrorCode.SPLITS_SENT_FOR_EQUAL_MODE, field_name="splits"
                )
            split_among = data.get("split_among") or []
            if not split_among:
                raise ValidationError(
                    ErrorCode.EMPTY_SPLIT_AMONG, field_name="split_among"
                )
            if _has_duplicates(split_among):
                raise ValidationError(
                    ErrorCode.DUPLICATE_SPLIT_PARTICIPANT, field_name="split_among"
                )
            return

        if data.get("split_among") is not None:
            raise ValidationError(
                ErrorCode.SPLIT_AMONG_SENT_FOR_CUSTOM_MODE, field_name="split_among"
            )
        split_ids = [s["participant_id"] for s in data.get("splits") or []]
        if _has_duplicates(split_ids):
            raise ValidationError(
                ErrorCode.DUPLICATE_SPLIT_PARTICIPANT, field_name="splits"
            )


# ── Compute settlement ─────────────────────────────────────────────────────

class ComputeSettlementSchema(Schema):
    """
    POST /settlements/compute and the `flask settle` snapshot file.

    Both lists are required but may be empty: an empty snapshot is a
    valid, fully settled group.
    """

    participants = fields.List(
        fields.Nested(ParticipantInputSchema),
        required=True,
    )

    expenses = fields.List(
        fields.Nested(ExpenseInputSchema),
        required=True,
    )

    # Optional. Only used to fill in each transfer's "direction".
    current_participant_id = fields.Str(load_default=None, allow_none=True)

    @validates("participants")
    def validate_unique_participants(self, value: list, **kwargs) -> None:
        if _has_duplicates([p["id"] for p in value]):
            raise ValidationError(ErrorCode.DUPLICATE_PARTICIPANT)
