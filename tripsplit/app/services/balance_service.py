"""
services/balance_service.py — Balance computation and debt simplification.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
The canonical formula must not be reimplemented elsewhere in the codebase.
Any change to how balances work must be made here; all other behaviour
follows from it.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives read-only snapshots of participants and expenses. Any object
    exposing the attributes of models.Participant / models.Expense /
    models.Split works.
  - Returns plain Python dicts and lists.
  - Pure and stateless: the same input always yields the same output,
    in the same order.

Degradation rules:
  - Payers and split participants missing from `participants` are ignored
    for balance purposes. They never raise.
  - Rounding drift below one cent is absorbed by SETTLE_TOLERANCE.
    Exact reconciliation is never asserted.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from tripsplit.app.errors import WarningCode
from tripsplit.app.models.transfer import TransferDirection


CENT = Decimal("0.01")

# Balances within one cent of zero count as settled.
SETTLE_TOLERANCE = Decimal("0.01")

UNKNOWN_NAME = "Unknown"


# ── Numeric helpers ────────────────────────────────────────────────────────

def to_decimal(value) -> Decimal:
    """
    Converts a monetary value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    expansion. Decimals are returned unchanged.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_cents(value) -> Decimal:
    """Rounds to the nearest cent, halves away from zero. Never returns -0.00."""
    rounded = to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    return abs(rounded) if rounded.is_zero() else rounded


def _display_names(participants: Iterable) -> dict:
    """{participant_id: display_name}. The first occurrence of an id wins."""
    names: dict = {}
    for p in participants:
        names.setdefault(p.id, p.display_name)
    return names


def _resolve_name(names: dict, participant_id) -> str:
    return names.get(participant_id) or UNKNOWN_NAME


# ── Core algorithms ────────────────────────────────────────────────────────

def compute_balances(participants: Iterable, expenses: Iterable) -> dict:
    """
    Canonical balance computation.

    Returns {participant_id: net_balance} for every participant, in
    participant order.

    Algorithm:
      1. Every participant starts at zero, even if they never appear in
         an expense.
      2. Credit each payer for the full expense amount they fronted.
      3. Debit each split participant for their share.

    Ids that are not in `participants` are skipped in steps 2 and 3.
    An expense with no splits still credits its payer.

    The result is NOT rounded. simplify_debts() rounds to cents before
    classifying anyone as debtor or creditor.
    """
    balances: dict = {}
    for p in participants:
        balances.setdefault(p.id, Decimal("0"))

    for expense in expenses:
        if expense.paid_by_id in balances:
            balances[expense.paid_by_id] += to_decimal(expense.amount)

        for split in expense.splits:
            if split.participant_id in balances:
                balances[split.participant_id] -= to_decimal(split.share_amount)

    return balances


def simplify_debts(balances: dict, participants: Iterable = ()) -> list[dict]:
    """
    Greedy two-cursor debt simplification.

    Pairs the largest remaining debt with the largest remaining credit until
    either side runs out. This is not a proven minimum for every multi-party
    case, but it is deterministic: ties keep the iteration order of
    `balances`.

    Args:
        balances:     {participant_id: net_balance}, usually from
                      compute_balances().
        participants: Used only to resolve display names. An id with no
                      name resolves to "Unknown".

    Returns:
        List of {"from_participant_id", "from_name", "to_participant_id",
        "to_name", "amount"} dicts in emission order. amount is a Decimal
        rounded to cents and always > 0. An empty list means everyone is
        settled.
    """
    names = _display_names(participants)

    debtors: list[tuple] = []
    creditors: list[tuple] = []
    for pid, balance in balances.items():
        rounded = round_cents(balance)
        if rounded < -SETTLE_TOLERANCE:
            debtors.append((pid, rounded))
        elif rounded > SETTLE_TOLERANCE:
            creditors.append((pid, rounded))

    # list.sort is stable, including with reverse=True.
    debtors.sort(key=lambda x: x[1])                   # most negative first
    creditors.sort(key=lambda x: x[1], reverse=True)   # largest credit first

    transactions: list[dict] = []
    i = j = 0

    while i < len(debtors) and j < len(creditors):
        did, debt = debtors[i]
        cid, credit = creditors[j]

        transfer = min(abs(debt), credit)
        transactions.append({
            "from_participant_id": did,
            "from_name": _resolve_name(names, did),
            "to_participant_id": cid,
            "to_name": _resolve_name(names, cid),
            "amount": transfer,
        })

        debtors[i] = (did, debt + transfer)
        creditors[j] = (cid, credit - transfer)

        if abs(debtors[i][1]) < SETTLE_TOLERANCE:
            i += 1
        if creditors[j][1] < SETTLE_TOLERANCE:
            j += 1

    return transactions


def compute_settlement(participants: Iterable, expenses: Iterable) -> list[dict]:
    """
    Balance accumulation followed by debt simplification.

    This is the engine's entry point: callers hand over the current
    participants and expenses and render whatever comes back. It is
    recomputed from scratch on every call.
    """
    participants = list(participants)
    balances = compute_balances(participants, expenses)
    return simplify_debts(balances, participants)


# ── Presentation helpers ───────────────────────────────────────────────────

def classify_transfer(transfer: dict, current_participant_id) -> TransferDirection:
    """Tells whether the current participant pays, receives, or neither."""
    if current_participant_id is None:
        return TransferDirection.NONE
    if transfer["from_participant_id"] == current_participant_id:
        return TransferDirection.PAYS
    if transfer["to_participant_id"] == current_participant_id:
        return TransferDirection.RECEIVES
    return TransferDirection.NONE


def classify_transfers(transfers: list[dict], current_participant_id) -> list[dict]:
    """Returns copies of `transfers` with a "direction" key added."""
    return [
        {**t, "direction": classify_transfer(t, current_participant_id)}
        for t in transfers
    ]


def summarize_balances(participants: Iterable, expenses: Iterable) -> list[dict]:
    """
    Per-participant totals for the balance screen.

    Returns one row per participant, in participant order:
      {"participant_id", "display_name", "total_paid_out", "total_debt",
       "net_balance"}

    net_balance comes from compute_balances(). total_paid_out and
    total_debt follow the same unknown-id rule.
    """
    participants = list(participants)
    expenses = list(expenses)
    names = _display_names(participants)

    paid_out = {pid: Decimal("0") for pid in names}
    debt = {pid: Decimal("0") for pid in names}

    for expense in expenses:
        if expense.paid_by_id in paid_out:
            paid_out[expense.paid_by_id] += to_decimal(expense.amount)
        for split in expense.splits:
            if split.participant_id in debt:
                debt[split.participant_id] += to_decimal(split.share_amount)

    balances = compute_balances(participants, expenses)

    return [
        {
            "participant_id": pid,
            "display_name": _resolve_name(names, pid),
            "total_paid_out": paid_out[pid],
            "total_debt": debt[pid],
            "net_balance": balances[pid],
        }
        for pid in names
    ]


def find_ledger_warnings(participants: Iterable, expenses: Iterable) -> list[dict]:
    """
    Lists the problems in a snapshot that the engine silently tolerates.

    Returns warning dicts ({"code", "message", plus context keys}) in
    expense order. An empty list means the snapshot is consistent.
    """
    participants = list(participants)
    expenses = list(expenses)
    known = set(_display_names(participants))
    warnings: list[dict] = []

    for expense in expenses:
        unknown_ids = []
        if expense.paid_by_id not in known:
            unknown_ids.append(expense.paid_by_id)
        for split in expense.splits:
            if split.participant_id not in known and split.participant_id not in unknown_ids:
                unknown_ids.append(split.participant_id)

        for pid in unknown_ids:
            warnings.append({
                "code": WarningCode.UNKNOWN_PARTICIPANT,
                "message": (
                    f"Expense {expense.id} references participant {pid}, "
                    f"who is not in this group. Their amounts were ignored."
                ),
                "expense_id": expense.id,
                "participant_id": pid,
            })

        split_total = sum(
            (to_decimal(s.share_amount) for s in expense.splits),
            Decimal("0"),
        )
        difference = round_cents(to_decimal(expense.amount) - split_total)
        if abs(difference) >= SETTLE_TOLERANCE:
            warnings.append({
                "code": WarningCode.SPLIT_SUM_MISMATCH,
                "message": (
                    f"Shares of expense {expense.id} add up to "
                    f"{round_cents(split_total)}, not {round_cents(expense.amount)}."
                ),
                "expense_id": expense.id,
            })

    balance_sum = round_cents(
        sum(compute_balances(participants, expenses).values(), Decimal("0"))
    )
    if balance_sum != Decimal("0.00"):
        warnings.append({
            "code": WarningCode.UNBALANCED_LEDGER,
            "message": (
                f"Balances sum to {balance_sum} instead of 0.00. "
                f"Transfers may leave some participants unsettled."
            ),
        })

    return warnings


def get_settlement_response(
        participants: Iterable,
        expenses: Iterable,
        current_participant_id=None,
) -> tuple[dict, list[dict]]:
    """
    Builds the payload for POST /settlements/compute and `flask settle`.

    Returns:
        (payload, warnings). Monetary values in the payload are strings
        rounded to cents. warnings comes from find_ledger_warnings() and
        never blocks the response.
    """
    participants = list(participants)
    expenses = list(expenses)

    summary = summarize_balances(participants, expenses)
    transfers = classify_transfers(
        compute_settlement(participants, expenses),
        current_participant_id,
    )
    balance_sum = sum((row["net_balance"] for row in summary), Decimal("0"))

    payload = {
        "balances": [
            {
                "participant_id": row["participant_id"],
                "display_name": row["display_name"],
                "total_paid_out": str(round_cents(row["total_paid_out"])),
                "total_debt": str(round_cents(row["total_debt"])),
                "net_balance": str(round_cents(row["net_balance"])),
            }
            for row in summary
        ],
        "transfers": [
            {
                "from_participant_id": t["from_participant_id"],
                "from_name": t["from_name"],
                "to_participant_id": t["to_participant_id"],
                "to_name": t["to_name"],
                "amount": str(t["amount"]),
                "direction": t["direction"].value,
            }
            for t in transfers
        ],
        "balance_sum": str(round_cents(balance_sum)),
        "settled": not transfers,
    }

    return payload, find_ledger_warnings(participants, expenses)
