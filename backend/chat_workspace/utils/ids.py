"""Identifiers for import jobs."""

from __future__ import annotations

import secrets

from chat_workspace.utils.time import now_ms


def new_id(prefix: str) -> str:
    """``{prefix}_{epoch ms}_{random hex}``; ids with one prefix sort by creation time."""
    return f"{prefix}_{now_ms():013d}_{secrets.token_hex(4)}"
