"""Online/offline mode detection."""

from __future__ import annotations

from enum import StrEnum

from story_safe.settings import direct_delivery_token


class Mode(StrEnum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


def detect_mode(token: str | None = None) -> Mode:
    """Classify an explicit token, or the current environment when none is given."""
    if token is None:
        token = direct_delivery_token()
    return Mode.ONLINE if token.strip() else Mode.OFFLINE


def is_offline() -> bool:
    """True iff no delivery token is present right now; re-read on every call."""
    return detect_mode() is Mode.OFFLINE
