"""Realtime settings with defaults, overridable through ``settings.REALTIME``."""

from typing import Any

from django.conf import settings

REALTIME_DEFAULTS = {
    # Liveness sweep period; a connection silent for one full period is reaped.
    "HEARTBEAT_INTERVAL": 30,
    # Vehicle staleness sweep period and the age after which a position is dropped.
    "STALE_SWEEP_INTERVAL": 10,
    "STALE_AFTER": 30,
    "MAX_MESSAGE_SIZE": 100 * 1024 * 1024,
    # Token claims that may carry the user id, tried in order.
    "USER_ID_CLAIMS": ("userId", "user_id", "id"),
    "DEFAULT_VEHICLE_TYPE": "CAR",
}


def get_realtime_setting(name: str) -> Any:
    """Return ``settings.REALTIME[name]``, falling back to the default."""
    overrides = getattr(settings, "REALTIME", None) or {}
    if name in overrides:
        return overrides[name]
    return REALTIME_DEFAULTS[name]
