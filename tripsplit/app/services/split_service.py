"""
services/split_service.py — Split construction and snapshot conversion.

Equal split computation:
  - Divides the amount among the chosen participants using ROUND_DOWN.
  - The leftover cents are added to the payer's share.
  - This guarantees sum(shares) == amount, so an equal-split expense never
    triggers a SPLIT_SUM_MISMATCH warning.

Snapshot conversion:
  - build_participants() / build_expenses() turn validated payload dicts
    (see schemas/settlement_schema.py) into the frozen dataclasses the
    balance engine reads.
  - Custom shares are kept exactly as given. They are never re-divided.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain dicts and lists; returns dataclasses or raises AppError.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_DOWN

from tripsplit.app.errors import AppError, ErrorCode
from tripsplit.app.models.expense import Expense, SplitMode
from tripsplit.app.models.participant import Participant
from tripsplit.app.models.split import Split
from tripsplit.app.services.balance_service import to_decimal


def compute_equal_splits(
        amount,
        participant_ids: list,
        payer_id,
) -> list[dict]:
    """
    Canonical equal split computation.

    Args:
        amount:          The full expense amount.
        participant_ids: Everyone who shares the expense, in display order.
        payer_id:        Receives the remainder. If the payer does not share
                         the expense, the first participant receives it.

    Returns:
        List of {"participant_id", "share_amount"} dicts, one per id.

    Raises:
        AppError(EMPTY_SPLIT_AMONG, 400) -- participant_ids is empty.
    """
    amount = to_decimal(amount)
    n = len(participant_ids)
    if n == 0:
        raise AppError(
            ErrorCode.EMPTY_SPLIT_AMONG,
            "An expense must be split among at least one participant.",
            400,
            field="split_among",
        )

    base = (amount / Decimal(n)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
    remainder = amount - (base * n)

    splits = [{"participant_id": pid, "share_amount": base} for pid in participant_ids]

    if remainder > Decimal("0"):
        payer_split = next(
            (s for s in splits if s["participant_id"] == payer_id),
            splits[0],
        )
        payer_split["share_amount"] += remainder

    # Must always hold; a failure here is a programming error.
    computed_sum = sum(s["share_amount"] for s in splits)
    if computed_sum != amount:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Equal split computation produced sum {computed_sum} for amount {amount}. "
            f"This is a bug, please report it.",
            500,
        )

    return splits


def build_participants(participants_data: list[dict]) -> list[Participant]:
    return [
        Participant(id=p["id"], display_name=p.get("display_name", ""))
        for p in participants_data
    ]


def build_expense(expense_data: dict, position: int) -> Expense:
    """
    Builds one Expense from a validated payload dict.

    `position` is the 1-based index in the payload, used to name expenses
    that arrive without an id.
    """
    expense_id = expense_data.get("id") or f"expense-{position}"
    amount = to_decimal(expense_data["amount"])
    split_mode = SplitMode(expense_data.get("split_mode", SplitMode.CUSTOM))

    if split_mode == SplitMode.EQUAL:
        shares = compute_equal_splits(
            amount,
            expense_data.get("split_among") or [],
            expense_data["paid_by_id"],
        )
    else:
        shares = expense_data.get("splits") or []

    return Expense(
        id=expense_id,
        paid_by_id=expense_data["paid_by_id"],
        amount=amount,
        splits=tuple(
            Split(
                expense_id=expense_id,
                participant_id=s["participant_id"],
                share_amount=to_decimal(s["share_amount"]),
            )
            for s in shares
        ),
        description=expense_data.get("description", ""),
    )


def build_expenses(expenses_data: list[dict]) -> list[Expense]:
    return [
        build_expense(data, position)
        for position, data in enumerate(expenses_data, start=1)
    ]
