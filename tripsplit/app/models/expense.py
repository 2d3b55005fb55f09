"""
models/expense.py — Expense snapshot and the SplitMode enum.

No business logic. No imports from services or routes.

Key design points:
  - Expenses are read-only snapshots handed over by the data layer.
    Nothing in this package stores or mutates them.
  - `amount` is a non-negative Decimal. Never float.
  - An expense may carry zero splits. The payer is still credited in full.
  - SplitMode is a Python enum so schemas and services share one definition.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal

from tripsplit.app.models.split import Split


class SplitMode(str, enum.Enum):
    """How an API payload describes the shares of an expense."""
    EQUAL  = "equal"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Expense:
    id: str
    paid_by_id: str
    amount: Decimal
    splits: tuple[Split, ...] = field(default_factory=tuple)
    description: str = ""

    def __repr__(self) -> str:
        return (
            f"<Expense id={self.id!r} paid_by={self.paid_by_id!r} "
            f"amount={self.amount} splits={len(self.splits)}>"
        )
