"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - There is no database: every request carries its own snapshot, so tests
    are isolated without any cleanup.

Helper functions (not fixtures) are provided for common operations:
  - participant(...)    → participant payload dict
  - custom_expense(...) → expense payload dict with explicit shares
  - equal_expense(...)  → expense payload dict split equally
  - compute(...)        → HTTP response of POST /settlements/compute

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from tripsplit.app import create_app


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once per session."""
    return create_app("testing")


# ═══════════════════════════════════════════════════════════════════════════
# Client fixtures
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Click runner bound to the app, for `flask settle`."""
    return app.test_cli_runner()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def participant(pid: str, name: str | None = None) -> dict:
    return {"id": pid, "display_name": name if name is not None else pid.title()}


def custom_expense(
    paid_by_id: str,
    amount: str,
    shares: dict[str, str],
    expense_id: str | None = None,
    description: str = "Test Expense",
) -> dict:
    """Expense with explicit {participant_id: share_amount} shares."""
    payload: dict = {
        "paid_by_id": paid_by_id,
        "amount": amount,
        "description": description,
        "split_mode": "custom",
        "splits": [
            {"participant_id": pid, "share_amount": share}
            for pid, share in shares.items()
        ],
    }
    if expense_id is not None:
        payload["id"] = expense_id
    return payload


def equal_expense(
    paid_by_id: str,
    amount: str,
    split_among: list[str],
    expense_id: str | None = None,
) -> dict:
    payload: dict = {
        "paid_by_id": paid_by_id,
        "amount": amount,
        "split_mode": "equal",
        "split_among": split_among,
    }
    if expense_id is not None:
        payload["id"] = expense_id
    return payload


def compute(
    client,
    participants: list[dict],
    expenses: list[dict],
    current_participant_id: str | None = None,
):
    """POSTs a snapshot and returns the HTTP response."""
    payload: dict = {"participants": participants, "expenses": expenses}
    if current_participant_id is not None:
        payload["current_participant_id"] = current_participant_id
    return client.post("/api/v1/settlements/compute", json=payload)
