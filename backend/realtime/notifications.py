"""
Per-user notification fan-out over ``/ws/notifications``.

Sockets authenticate with a bearer token in the ``token`` query parameter and
are grouped by user id. The HTTP layer pushes already-persisted notifications
through ``push_to_user`` / ``broadcast`` (or the ``notify_*`` helpers below);
delivery is best-effort and at-most-once.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from asgiref.sync import async_to_sync, sync_to_async

from .exceptions import InvalidTokenError, MalformedMessageError, MissingTokenError, WebSocketAuthError
from .protocol import (
    NOTIFICATION_PING,
    NotificationPayload,
    connected_frame,
    decode_frame,
    notification_error_frame,
    notification_frame,
)
from .registry import ConnectionRegistry, ConnectionRole, LivenessMonitor

logger = logging.getLogger(__name__)


class NotificationFanoutServer:
    """Owns the user -> connections registry of the notification socket."""

    path = "/ws/notifications"
    ping_frame = NOTIFICATION_PING

    def __init__(self, verifier: Any = None, heartbeat_interval: float = 30):
        self.verifier = verifier
        self.connections = ConnectionRegistry()
        self.liveness = LivenessMonitor(
            "notifications",
            self.connections.all_connections,
            self.unregister,
            interval=heartbeat_interval,
        )

    # ---------------------- Lifecycle ----------------------

    def start(self):
        self.liveness.start()

    async def stop(self):
        await self.liveness.stop()

    @property
    def is_running(self) -> bool:
        return self.liveness.is_running

    # ---------------------- Connection Handling ----------------------

    async def authenticate(self, token: Optional[str]) -> str:
        """Resolve a connection token to a user id.

        Raises MissingTokenError for an absent/empty token and
        InvalidTokenError when verification fails.
        """
        if not token:
            raise MissingTokenError()
        if self.verifier is None:
            raise InvalidTokenError("No token verifier configured")
        try:
            user_id = await sync_to_async(self.verifier.verify)(token)
        except WebSocketAuthError:
            raise
        except Exception as e:
            logger.exception("Token verification errored")
            raise InvalidTokenError(str(e)) from e
        if not user_id:
            raise InvalidTokenError("Token has no user id")
        return str(user_id)

    async def register(self, user_id: str, connection: Any) -> int:
        """Bind an authenticated connection to its user and acknowledge it."""
        connection.user_id = user_id
        connection.role = ConnectionRole.SUBSCRIBER
        count = self.connections.add(user_id, connection)
        logger.info("User %s connected (%s connections)", user_id, count)
        await connection.send_frame(connected_frame())
        return count

    async def unregister(self, connection: Any):
        """Forget a closed or dead connection. Safe to call more than once."""
        user_id = getattr(connection, "user_id", None)
        if user_id is None or user_id not in self.connections:
            return
        remaining = self.connections.remove(user_id, connection)
        logger.info("User %s disconnected (%s connections remaining)", user_id, remaining)

    async def receive_frame(self, connection: Any, raw: Any):
        """No client frames are defined; anything but a pong is logged and dropped."""
        try:
            frame = decode_frame(raw)
        except MalformedMessageError as e:
            await connection.send_frame(notification_error_frame(e.message))
            return
        if frame.get("type") != "pong":
            logger.debug("Ignoring client frame from user %s: %s", connection.user_id, frame.get("type"))

    # ---------------------- Delivery ----------------------

    async def _deliver(self, user_id: str, connections: Iterable[Any], message: str) -> int:
        sent = 0
        for connection in connections:
            if not connection.is_open:
                continue
            try:
                await connection.send_frame(message)
                sent += 1
            except Exception as e:
                logger.warning("Error sending notification to user %s: %s", user_id, e)
                self.connections.remove(user_id, connection)
        return sent

    async def push_to_user(self, user_id: Any, notification: NotificationPayload) -> bool:
        """Send a notification to every open connection of one user.

        Returns True if at least one connection received it. A user without
        live connections is not an error; the notification is already stored.
        """
        user_id = str(user_id)
        connections = self.connections.get(user_id)
        if not connections:
            logger.debug("User %s has no active connections", user_id)
            return False

        sent = await self._deliver(user_id, connections, notification_frame(notification))
        logger.info("Sent notification to user %s (%s/%s connections)", user_id, sent, len(connections))
        return sent > 0

    async def broadcast(self, notification: NotificationPayload) -> int:
        """Send a notification to every connected user; returns deliveries."""
        message = notification_frame(notification)
        sent = 0
        for user_id in self.connections.identities():
            sent += await self._deliver(user_id, self.connections.get(user_id), message)
        logger.info("Broadcast notification to %s connections", sent)
        return sent

    # ---------------------- Introspection ----------------------

    def connection_count(self, user_id: Any) -> int:
        return self.connections.count(str(user_id))

    def connected_user_count(self) -> int:
        return len(self.connections)

    def stats(self) -> Dict[str, Any]:
        return {
            "connected_users": self.connected_user_count(),
            "connections": len(self.connections.all_connections()),
            "heartbeat_running": self.liveness.is_running,
        }


# ---------------------- Helpers for the HTTP layer ----------------------

async def notify_user_async(user_id: Any, notification: NotificationPayload) -> bool:
    from .servers import get_notification_server
    return await get_notification_server().push_to_user(user_id, notification)


async def notify_all_async(notification: NotificationPayload) -> int:
    from .servers import get_notification_server
    return await get_notification_server().broadcast(notification)


def notify_user(user_id: Any, notification: NotificationPayload) -> bool:
    """Synchronous wrapper for notify_user_async (for sync views and services)."""
    return async_to_sync(notify_user_async)(user_id, notification)


def notify_all(notification: NotificationPayload) -> int:
    """Synchronous wrapper for notify_all_async."""
    return async_to_sync(notify_all_async)(notification)
