"""WebSocket URL routing for the realtime app."""

from channels.routing import URLRouter
from django.urls import re_path

from .consumers.notification_consumer import NotificationConsumer
from .consumers.vehicle_location_consumer import VehicleLocationConsumer
from .middleware import QueryTokenMiddleware


def build_websocket_urlpatterns(notification_server=None, vehicle_location_server=None):
    """URL patterns bound to the given servers (the process singletons by default)."""
    return [
        # Per-user notifications, token required
        # URL: ws://localhost:8000/ws/notifications?token=<jwt>
        re_path(
            r"ws/notifications/?$",
            NotificationConsumer.as_asgi(server=notification_server),
            name="notifications-ws",
        ),

        # Vehicle positions, unauthenticated
        # URL: ws://localhost:8000/ws/vehicle-location
        re_path(
            r"ws/vehicle-location/?$",
            VehicleLocationConsumer.as_asgi(server=vehicle_location_server),
            name="vehicle-location-ws",
        ),
    ]


def build_websocket_application(notification_server=None, vehicle_location_server=None):
    return QueryTokenMiddleware(
        URLRouter(build_websocket_urlpatterns(notification_server, vehicle_location_server))
    )
