"""
errors.py — AppError base class plus error and warning code registries.

Every error returned by the TripSplit API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - The balance engine itself never raises: malformed records become
    warnings (WarningCode), not errors.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD                    = "MISSING_FIELD"
    INVALID_FIELD                    = "INVALID_FIELD"
    INVALID_JSON                     = "INVALID_JSON"
    INVALID_AMOUNT_PRECISION         = "INVALID_AMOUNT_PRECISION"
    INVALID_SPLIT_MODE               = "INVALID_SPLIT_MODE"
    SPLITS_SENT_FOR_EQUAL_MODE       = "SPLITS_SENT_FOR_EQUAL_MODE"
    SPLIT_AMONG_SENT_FOR_CUSTOM_MODE = "SPLIT_AMONG_SENT_FOR_CUSTOM_MODE"
    DUPLICATE_PARTICIPANT            = "DUPLICATE_PARTICIPANT"
    DUPLICATE_SPLIT_PARTICIPANT      = "DUPLICATE_SPLIT_PARTICIPANT"
    EMPTY_SPLIT_AMONG                = "EMPTY_SPLIT_AMONG"

    # ── Payload Size (413) ─────────────────────────────────────────────────
    PAYLOAD_TOO_LARGE                = "PAYLOAD_TOO_LARGE"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR                   = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # An expense payer or split references an id missing from `participants`.
    # The amount is ignored for balance purposes.
    UNKNOWN_PARTICIPANT = "UNKNOWN_PARTICIPANT"

    # An expense's shares do not add up to its amount (by a cent or more).
    SPLIT_SUM_MISMATCH  = "SPLIT_SUM_MISMATCH"

    # The rounded balances do not sum to zero. Transfers are still computed.
    UNBALANCED_LEDGER   = "UNBALANCED_LEDGER"
