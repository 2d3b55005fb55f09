"""
routes/splits.py — Split preview route handlers.

Lets a client show each person's share before it submits an equal-split
expense. Nothing is stored.

Endpoints (base url_prefix=/api/v1/splits):
  POST   /splits/equal  → 200  shares for an equal split
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tripsplit.app.errors import AppError, ErrorCode
from tripsplit.app.schemas.split_schema import EqualSplitSchema
from tripsplit.app.services import split_service

splits_bp = Blueprint("splits", __name__)


@splits_bp.route("/equal", methods=["POST"])
def equal_split():
    """
    POST /splits/equal — {amount, participant_ids, payer_id}

    Leftover cents go to the payer, so the shares always add up to amount.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise AppError(
            ErrorCode.INVALID_JSON,
            "Request body must be a JSON object.",
            400,
        )

    data = EqualSplitSchema().load(body)
    splits = split_service.compute_equal_splits(
        data["amount"],
        data["participant_ids"],
        data["payer_id"],
    )
    return jsonify({"data": {"splits": splits}, "warnings": []}), 200
