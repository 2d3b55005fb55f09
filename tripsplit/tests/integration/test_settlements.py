"""
tests/integration/test_settlements.py — Integration tests for POST /settlements/compute.

Properties verified:
  - Response envelope is {"data": {...}, "warnings": [...]} with status 200
  - Transfers follow the greedy order (largest debt first)
  - Equal-split and custom-split expenses mix in one snapshot
  - Malformed records produce warnings, never errors
  - Schema violations produce 400 with a registered error code and field path
  - Oversized snapshots produce 413
  - Monetary amounts are strings, never JSON numbers
"""

from __future__ import annotations

from .conftest import compute, custom_expense, equal_expense, participant


TRIP = [participant("alice"), participant("bob"), participant("carol")]


def _transfer_pairs(body: dict) -> list[tuple]:
    return [
        (t["from_name"], t["to_name"], t["amount"])
        for t in body["data"]["transfers"]
    ]


# ═══════════════════════════════════════════════════════════════════════════
# Happy paths
# ═══════════════════════════════════════════════════════════════════════════

class TestComputeSettlement:

    def test_empty_snapshot_is_settled(self, client):
        resp = compute(client, [], [])

        assert resp.status_code == 200
        assert resp.get_json() == {
            "data": {
                "balances": [],
                "transfers": [],
                "balance_sum": "0.00",
                "settled": True,
            },
            "warnings": [],
        }

    def test_single_payer_equal_split(self, client):
        resp = compute(client, TRIP, [
            equal_expense("alice", "120.00", ["alice", "bob", "carol"]),
        ])

        body = resp.get_json()
        assert resp.status_code == 200
        assert body["warnings"] == []
        assert [b["net_balance"] for b in body["data"]["balances"]] == ["80.00", "-40.00", "-40.00"]
        assert _transfer_pairs(body) == [
            ("Bob",   "Alice", "40.00"),
            ("Carol", "Alice", "40.00"),
        ]
        assert body["data"]["settled"] is False

    def test_two_expenses_partial_overlap(self, client):
        resp = compute(client, TRIP, [
            custom_expense("alice", "120.00", {"alice": "40.00", "bob": "40.00", "carol": "40.00"}),
            custom_expense("bob", "30.00", {"alice": "15.00", "bob": "15.00"}),
        ])

        body = resp.get_json()
        assert _transfer_pairs(body) == [
            ("Carol", "Alice", "40.00"),
            ("Bob",   "Alice", "25.00"),
        ]
        assert body["data"]["balance_sum"] == "0.00"

    def test_unequal_shares_are_honoured(self, client):
        resp = compute(client, TRIP, [
            custom_expense("alice", "100.00", {"alice": "10.00", "bob": "60.00", "carol": "30.00"}),
        ])

        assert _transfer_pairs(resp.get_json()) == [
            ("Bob",   "Alice", "60.00"),
            ("Carol", "Alice", "30.00"),
        ]

    def test_balance_rows_include_totals(self, client):
        resp = compute(client, TRIP, [
            equal_expense("bob", "10.00", ["alice", "bob", "carol"]),
        ])

        bob = resp.get_json()["data"]["balances"][1]
        assert bob == {
            "participant_id": "bob",
            "display_name": "Bob",
            "total_paid_out": "10.00",
            "total_debt": "3.34",
            "net_balance": "6.66",
        }

    def test_direction_is_relative_to_current_participant(self, client):
        resp = compute(
            client, TRIP,
            [custom_expense("alice", "120.00", {"alice": "40.00", "bob": "40.00", "carol": "40.00"})],
            current_participant_id="bob",
        )

        directions = [t["direction"] for t in resp.get_json()["data"]["transfers"]]
        assert directions == ["pays", "none"]

    def test_division_derived_float_shares_are_accepted(self, client):
        """A JS client dividing 100 by 3 sends floats; the drift is absorbed."""
        expense = {
            "paid_by_id": "alice",
            "amount": 100,
            "splits": [
                {"participant_id": pid, "share_amount": 33.333333333333336}
                for pid in ("alice", "bob", "carol")
            ],
        }
        resp = compute(client, TRIP, [expense])

        body = resp.get_json()
        assert resp.status_code == 200
        assert body["warnings"] == []
        assert _transfer_pairs(body) == [
            ("Bob",   "Alice", "33.33"),
            ("Carol", "Alice", "33.33"),
        ]

    def test_amounts_are_strings(self, client):
        resp = compute(client, TRIP, [
            equal_expense("alice", "90.00", ["alice", "bob", "carol"]),
        ])

        data = resp.get_json()["data"]
        assert all(isinstance(t["amount"], str) for t in data["transfers"])
        assert all(isinstance(b["net_balance"], str) for b in data["balances"])

    def test_same_snapshot_gives_same_response(self, client):
        expenses = [
            equal_expense("alice", "61.00", ["alice", "bob", "carol"]),
            custom_expense("carol", "12.00", {"bob": "12.00"}),
        ]

        first = compute(client, TRIP, expenses).get_json()
        second = compute(client, TRIP, expenses).get_json()

        assert first == second


# ═══════════════════════════════════════════════════════════════════════════
# Graceful degradation: warnings, not errors
# ═══════════════════════════════════════════════════════════════════════════

class TestSnapshotWarnings:

    def test_unknown_participant_is_ignored_with_warning(self, client):
        resp = compute(client, TRIP, [
            custom_expense("alice", "30.00", {"alice": "10.00", "bob": "10.00", "dave": "10.00"},
                           expense_id="e-1"),
        ])

        body = resp.get_json()
        assert resp.status_code == 200
        unknown = [w for w in body["warnings"] if w["code"] == "UNKNOWN_PARTICIPANT"]
        assert unknown[0]["participant_id"] == "dave"
        assert unknown[0]["expense_id"] == "e-1"
        assert [b["participant_id"] for b in body["data"]["balances"]] == ["alice", "bob", "carol"]

    def test_split_sum_mismatch_is_a_warning(self, client):
        resp = compute(client, TRIP, [
            custom_expense("alice", "50.00", {"bob": "20.00"}),
        ])

        body = resp.get_json()
        assert resp.status_code == 200
        codes = [w["code"] for w in body["warnings"]]
        assert "SPLIT_SUM_MISMATCH" in codes
        assert "UNBALANCED_LEDGER" in codes
        assert _transfer_pairs(body) == [("Bob", "Alice", "20.00")]

    def test_expense_with_no_splits_credits_payer(self, client):
        resp = compute(client, TRIP, [custom_expense("carol", "45.00", {})])

        body = resp.get_json()
        assert body["data"]["balances"][2]["net_balance"] == "45.00"
        assert body["data"]["transfers"] == []

    def test_expense_without_splits_key_credits_payer(self, client):
        resp = compute(client, TRIP, [{"paid_by_id": "alice", "amount": "12.00"}])

        body = resp.get_json()
        assert resp.status_code == 200
        assert body["data"]["balances"][0]["net_balance"] == "12.00"
        assert body["data"]["transfers"] == []
        assert [w["code"] for w in body["warnings"]] == [
            "SPLIT_SUM_MISMATCH",
            "UNBALANCED_LEDGER",
        ]

    def test_blank_display_name_shows_unknown(self, client):
        participants = [participant("alice"), participant("bob", "")]
        resp = compute(client, participants, [
            custom_expense("alice", "20.00", {"alice": "10.00", "bob": "10.00"}),
        ])

        assert _transfer_pairs(resp.get_json()) == [("Unknown", "Alice", "10.00")]


# ═══════════════════════════════════════════════════════════════════════════
# Request validation
# ═══════════════════════════════════════════════════════════════════════════

class TestComputeSettlementErrors:

    def test_non_json_body_returns_400(self, client):
        resp = client.post(
            "/api/v1/settlements/compute",
            data="not json",
            content_type="text/plain",
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_JSON"

    def test_json_array_body_returns_400(self, client):
        resp = client.post("/api/v1/settlements/compute", json=[1, 2, 3])

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "INVALID_JSON"

    def test_missing_participants_returns_missing_field(self, client):
        resp = client.post("/api/v1/settlements/compute", json={"expenses": []})

        error = resp.get_json()["error"]
        assert resp.status_code == 400
        assert error["code"] == "MISSING_FIELD"
        assert error["field"] == "participants"

    def test_precision_error_reports_nested_field_path(self, client):
        resp = compute(client, TRIP, [
            custom_expense("alice", "10.00", {"alice": "10.00"}),
            custom_expense("alice", "10.001", {"alice": "10.001"}),
        ])

        error = resp.get_json()["error"]
        assert resp.status_code == 400
        assert error["code"] == "INVALID_AMOUNT_PRECISION"
        assert error["field"] == "expenses.1.amount"
        assert error["message"] == "Amount must have at most 2 decimal places."

    def test_amount_above_upper_bound_returns_400(self, client):
        resp = compute(client, TRIP, [
            custom_expense("alice", "1E+30", {"alice": "1E+30"}),
        ])

        error = resp.get_json()["error"]
        assert resp.status_code == 400
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "expenses.0.amount"

    def test_duplicate_participant_returns_400(self, client):
        resp = compute(client, [participant("alice"), participant("alice")], [])

        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "DUPLICATE_PARTICIPANT"

    def test_splits_sent_for_equal_mode_returns_400(self, client):
        expense = equal_expense("alice", "30.00", ["alice", "bob"])
        expense["splits"] = []
        resp = compute(client, TRIP, [expense])

        error = resp.get_json()["error"]
        assert error["code"] == "SPLITS_SENT_FOR_EQUAL_MODE"
        assert error["field"] == "expenses.0.splits"

    def test_too_many_participants_returns_413(self, app, client):
        limit = app.config["MAX_PARTICIPANTS"]
        people = [participant(f"p{i}") for i in range(limit + 1)]

        resp = compute(client, people, [])

        error = resp.get_json()["error"]
        assert resp.status_code == 413
        assert error["code"] == "PAYLOAD_TOO_LARGE"
        assert error["field"] == "participants"

    def test_too_many_expenses_returns_413(self, app, client):
        limit = app.config["MAX_EXPENSES"]
        expenses = [custom_expense("alice", "1.00", {"alice": "1.00"}) for _ in range(limit + 1)]

        resp = compute(client, TRIP, expenses)

        assert resp.status_code == 413
        assert resp.get_json()["error"]["field"] == "expenses"

    def test_get_is_not_allowed(self, client):
        resp = client.get("/api/v1/settlements/compute")
        assert resp.status_code == 405
