"""Process-wide realtime server instances."""

from typing import Optional

from .auth import JWTTokenVerifier
from .conf import get_realtime_setting
from .notifications import NotificationFanoutServer
from .vehicles import VehicleLocationFanoutServer

_notification_server: Optional[NotificationFanoutServer] = None
_vehicle_location_server: Optional[VehicleLocationFanoutServer] = None


def get_notification_server() -> NotificationFanoutServer:
    """Get singleton NotificationFanoutServer instance."""
    global _notification_server
    if _notification_server is None:
        _notification_server = NotificationFanoutServer(
            verifier=JWTTokenVerifier(),
            heartbeat_interval=get_realtime_setting("HEARTBEAT_INTERVAL"),
        )
    return _notification_server


def get_vehicle_location_server() -> VehicleLocationFanoutServer:
    """Get singleton VehicleLocationFanoutServer instance."""
    global _vehicle_location_server
    if _vehicle_location_server is None:
        _vehicle_location_server = VehicleLocationFanoutServer(
            heartbeat_interval=get_realtime_setting("HEARTBEAT_INTERVAL"),
            stale_sweep_interval=get_realtime_setting("STALE_SWEEP_INTERVAL"),
            stale_after=get_realtime_setting("STALE_AFTER"),
            default_vehicle_type=get_realtime_setting("DEFAULT_VEHICLE_TYPE"),
        )
    return _vehicle_location_server
