"""
routes/settlements.py — Settlement route handlers.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - No business logic. No storage: the request body is the whole snapshot.

Special: get_settlement_response returns (payload, warnings[]).
  Warnings (UNKNOWN_PARTICIPANT, SPLIT_SUM_MISMATCH, UNBALANCED_LEDGER) are
  returned in the envelope: {"data": {...}, "warnings": [{"code": ..., ...}]}.
  The HTTP status is still 200. A malformed record never fails the request.

Endpoints (base url_prefix=/api/v1/settlements):
  POST   /settlements/compute  → 200  balances + settle-up transfers
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from tripsplit.app.errors import AppError, ErrorCode
from tripsplit.app.schemas.settlement_schema import ComputeSettlementSchema
from tripsplit.app.services import balance_service, split_service

settlements_bp = Blueprint("settlements", __name__)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise AppError(
            ErrorCode.INVALID_JSON,
            "Request body must be a JSON object.",
            400,
        )
    return body


def _enforce_snapshot_limits(data: dict) -> None:
    """Rejects snapshots larger than MAX_PARTICIPANTS / MAX_EXPENSES (413)."""
    limits = (
        ("participants", current_app.config["MAX_PARTICIPANTS"]),
        ("expenses",     current_app.config["MAX_EXPENSES"]),
    )
    for field, limit in limits:
        if len(data[field]) > limit:
            raise AppError(
                ErrorCode.PAYLOAD_TOO_LARGE,
                f"At most {limit} {field} can be settled in one request.",
                413,
                field=field,
            )


@settlements_bp.route("/compute", methods=["POST"])
def compute_settlement():
    """
    POST /settlements/compute — Balances and settle-up transfers for a snapshot.

    Body:
      participants           : [{id, display_name}]
      expenses               : [{id?, description?, paid_by_id, amount,
                                 split_mode?, splits? | split_among?}]
      current_participant_id : optional; sets each transfer's "direction"

    An empty transfers list (with "settled": true) means nobody owes anything.
    """
    data = ComputeSettlementSchema().load(_json_body())
    _enforce_snapshot_limits(data)

    participants = split_service.build_participants(data["participants"])
    expenses = split_service.build_expenses(data["expenses"])

    result, warnings = balance_service.get_settlement_response(
        participants,
        expenses,
        current_participant_id=data["current_participant_id"],
    )

    for warning in warnings:
        current_app.logger.warning(
            "Settlement snapshot warning %s: %s",
            warning["code"],
            warning["message"],
        )
    current_app.logger.debug(
        "Computed %d transfers for %d participants and %d expenses",
        len(result["transfers"]),
        len(participants),
        len(expenses),
    )

    return jsonify({"data": result, "warnings": warnings}), 200
