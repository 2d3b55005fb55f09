"""
models/split.py — One participant's share of an expense.

No business logic. No imports from services or routes.

Key design points:
  - `share_amount` is a Decimal. Never float. Division-derived shares may
    carry more than two decimal places; the engine rounds balances, not shares.
  - The sum of an expense's shares is expected to equal the expense amount.
    That is a caller precondition. The balance engine does not enforce it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Split:
    expense_id: str
    participant_id: str
    share_amount: Decimal
