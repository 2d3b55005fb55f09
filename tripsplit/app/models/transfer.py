"""
models/transfer.py — Presentation enum for settle-up transfers.

Transfers themselves are plain dicts produced by
balance_service.simplify_debts(). This module only defines how a transfer
relates to the participant looking at it.
"""

from __future__ import annotations

import enum


class TransferDirection(str, enum.Enum):
    PAYS     = "pays"      # the current participant sends the money
    RECEIVES = "receives"  # the current participant is paid
    NONE     = "none"      # transfer between two other participants
