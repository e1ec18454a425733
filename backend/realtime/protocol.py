"""
Wire format for the two realtime sockets.

Notification socket frames are tagged with ``type``; vehicle-location frames
with ``event``. Everything is JSON text.

Server -> client (notifications):
    {"type": "connected", "message": str}
    {"type": "notification", "data": <Notification>}
    {"type": "ping"}

Server -> client (vehicle location):
    {"event": "vehicle_position", "data": {vehicleId, type, lat, lng, speed, bearing, timestamp}}
    {"event": "vehicle_removed", "data": {vehicleId}}
    {"event": "location_ack", "vehicleId": str, "timestamp": int}
    {"event": "error", "message": str}
    {"event": "ping"}

The ping frames are informational. Clients never have to answer them; dead
peers are detected by the WebSocket transport.
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import InvalidLocationError, MalformedMessageError, MissingFieldsError

# Close codes
POLICY_VIOLATION = 1008
MESSAGE_TOO_BIG = 1009

DEFAULT_VEHICLE_TYPE = "CAR"


def now_ms() -> int:
    return int(time.time() * 1000)


def encode_frame(frame: Mapping[str, Any]) -> str:
    return json.dumps(frame)


def decode_frame(raw: Union[str, bytes, None]) -> Dict[str, Any]:
    """Parse one inbound frame into a JSON object.

    Raises MalformedMessageError for undecodable bytes, invalid JSON, or any
    JSON value that is not an object.
    """
    if raw is None:
        raise MalformedMessageError()
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMessageError() from exc
    try:
        frame = json.loads(raw)
    except ValueError as exc:
        raise MalformedMessageError() from exc
    if not isinstance(frame, dict):
        raise MalformedMessageError()
    return frame


# ---------------------- Notifications ----------------------

class NotificationType(str, Enum):
    MESSAGE = "MESSAGE"
    RIDE_REQUEST = "RIDE_REQUEST"
    RIDE_ACCEPTED = "RIDE_ACCEPTED"
    COMMENT = "COMMENT"
    LIKE = "LIKE"
    FRIEND_REQUEST = "FRIEND_REQUEST"
    FRIEND_REQUEST_ACCEPTED = "FRIEND_REQUEST_ACCEPTED"
    SYSTEM = "SYSTEM"
    PUBLIC_TRANSPORT_SEARCH = "PUBLIC_TRANSPORT_SEARCH"


@dataclass
class Notification:
    """A persisted notification as delivered to clients.

    ``data`` is a free-form payload whose keys depend on ``type`` (e.g. a ride
    id for RIDE_ACCEPTED); unknown keys are passed through untouched.
    """
    id: str
    type: NotificationType
    title: str
    message: str
    user: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    read: bool = False
    read_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user": self.user,
            "type": NotificationType(self.type).value,
            "title": self.title,
            "message": self.message,
            "data": dict(self.data),
            "read": self.read,
            "readAt": self.read_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


NotificationPayload = Union[Notification, Mapping[str, Any]]


def connected_frame() -> str:
    return encode_frame({"type": "connected", "message": "Connected to notification server"})


def notification_frame(notification: NotificationPayload) -> str:
    if isinstance(notification, Notification):
        data = notification.to_dict()
    else:
        data = dict(notification)
    return encode_frame({"type": "notification", "data": data})


def notification_error_frame(message: str) -> str:
    return encode_frame({"type": "error", "message": message})


NOTIFICATION_PING = encode_frame({"type": "ping"})


# ---------------------- Vehicle location ----------------------

def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass
class VehiclePosition:
    """Last known state of one vehicle.

    ``timestamp`` is the producer's event time (ms) and is only displayed;
    ``last_update`` is the server clock reading used for staleness.
    """
    vehicle_id: str
    lat: float
    lng: float
    type: str = DEFAULT_VEHICLE_TYPE
    speed: float = 0.0
    bearing: float = 0.0
    timestamp: Any = None
    last_update: float = 0.0

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        received_at: float,
        default_type: str = DEFAULT_VEHICLE_TYPE,
    ) -> "VehiclePosition":
        """Build a position from an ``update_location`` data object.

        Presence of vehicleId, lat and lng is a truthiness check; no range
        validation is done. lat/lng must still coerce to finite floats.
        """
        if not isinstance(payload, dict):
            raise MalformedMessageError()

        vehicle_id = payload.get("vehicleId")
        if not vehicle_id or not payload.get("lat") or not payload.get("lng"):
            raise MissingFieldsError()

        lat = _to_float(payload["lat"])
        lng = _to_float(payload["lng"])
        if lat is None or lng is None:
            raise InvalidLocationError()

        return cls(
            vehicle_id=str(vehicle_id),
            type=payload.get("type") or default_type,
            lat=lat,
            lng=lng,
            speed=_to_float(payload.get("speed")) or 0.0,
            bearing=_to_float(payload.get("bearing")) or 0.0,
            timestamp=payload.get("timestamp") or now_ms(),
            last_update=received_at,
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "vehicleId": self.vehicle_id,
            "type": self.type,
            "lat": self.lat,
            "lng": self.lng,
            "speed": self.speed,
            "bearing": self.bearing,
            "timestamp": self.timestamp,
        }


def vehicle_position_frame(position: VehiclePosition) -> str:
    return encode_frame({"event": "vehicle_position", "data": position.to_wire()})


def vehicle_removed_frame(vehicle_id: str) -> str:
    return encode_frame({"event": "vehicle_removed", "data": {"vehicleId": vehicle_id}})


def location_ack_frame(vehicle_id: str) -> str:
    return encode_frame({"event": "location_ack", "vehicleId": vehicle_id, "timestamp": now_ms()})


def location_error_frame(message: str) -> str:
    return encode_frame({"event": "error", "message": message})


LOCATION_PING = encode_frame({"event": "ping"})
