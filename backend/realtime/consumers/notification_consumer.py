"""Notification WebSocket consumer: one authenticated socket per user device."""

import logging

from realtime.exceptions import WebSocketAuthError
from realtime.protocol import POLICY_VIOLATION
from realtime.servers import get_notification_server

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class NotificationConsumer(BaseConsumer):
    """
    WebSocket consumer for ``/ws/notifications?token=...``.

    The socket is accepted first and then authenticated; a missing or invalid
    token closes it with 1008 before it is registered anywhere.
    """

    def get_default_server(self):
        return get_notification_server()

    async def on_connect(self):
        try:
            user_id = await self.server.authenticate(self.scope.get("token"))
        except WebSocketAuthError as e:
            logger.info("Notification socket rejected: %s", e.detail)
            await self.terminate(code=POLICY_VIOLATION, reason=e.close_reason)
            return

        await self.server.register(user_id, self)

    async def server_disconnect(self):
        await self.server.unregister(self)
