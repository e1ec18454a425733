"""
ASGI entrypoint. HTTP goes to Django, WebSockets to the realtime consumers.

Run with:
    daphne --ping-interval 30 --ping-timeout 30 app_backend.asgi:application

Daphne's WebSocket ping/pong closes dead peers; that close is what removes a
connection from the realtime servers. `manage.py runserver` uses Daphne's
defaults (20s interval, 30s timeout).
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app_backend.settings.settings")

# Initialize Django before importing anything that touches models or settings.
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter  # noqa: E402

from realtime.routing import build_websocket_application  # noqa: E402

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": build_websocket_application(),
})
