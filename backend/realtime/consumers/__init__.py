"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .notification_consumer import NotificationConsumer
from .vehicle_location_consumer import VehicleLocationConsumer

__all__ = [
    "BaseConsumer",
    "NotificationConsumer",
    "VehicleLocationConsumer",
]
