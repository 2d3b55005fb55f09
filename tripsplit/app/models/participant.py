"""
models/participant.py — A person taking part in a trip group.

The balance engine only needs the id and the display name. Everything else
about a participant (admin flags, avatars, join codes) belongs to the data
layer and never reaches this package.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Participant:
    id: str
    display_name: str
