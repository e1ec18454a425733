"""Base WebSocket consumer: the transport side of a realtime connection."""

import logging
from typing import Any, Optional, Set

from channels.generic.websocket import AsyncWebsocketConsumer

from realtime.conf import get_realtime_setting
from realtime.protocol import MESSAGE_TOO_BIG
from realtime.registry import ConnectionRole

logger = logging.getLogger(__name__)


def frame_size(raw) -> int:
    """Size of a frame in bytes as sent on the wire (text is UTF-8)."""
    if raw is None:
        return 0
    if isinstance(raw, str):
        return len(raw.encode("utf-8"))
    return len(raw)


class BaseConsumer(AsyncWebsocketConsumer):
    """
    Adapts a Channels consumer to the connection interface the servers use
    (``is_open``, ``send_frame``, ``ping``, ``terminate``).

    Subclasses should override:
        - get_default_server(): server used when none is passed to as_asgi()
        - on_connect(): called once the socket is accepted
    """

    def __init__(self, *args, server: Any = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.server = server if server is not None else self.get_default_server()
        self.is_open = False
        self.role = ConnectionRole.UNBOUND
        self.user_id: Optional[str] = None
        self.vehicle_ids: Set[str] = set()
        self.max_message_size = get_realtime_setting("MAX_MESSAGE_SIZE")

    def get_default_server(self):
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {getattr(self, 'channel_name', None) or id(self)} role={self.role.value}>"

    async def connect(self):
        await self.accept()
        self.is_open = True
        self.server.start()
        await self.on_connect()

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        pass

    async def disconnect(self, close_code):
        self.is_open = False
        try:
            await self.server_disconnect()
        except Exception:
            logger.exception("Error during disconnect of %r", self)

    async def server_disconnect(self):
        """Override in subclass to tell the server the socket is gone."""
        pass

    async def receive(self, text_data=None, bytes_data=None):
        raw = text_data if text_data is not None else bytes_data
        size = frame_size(raw)
        if size > self.max_message_size:
            logger.warning("Closing %r: frame of %s bytes exceeds limit", self, size)
            await self.terminate(code=MESSAGE_TOO_BIG)
            return
        await self.server.receive_frame(self, raw)

    # ---------------------- Connection Interface ----------------------

    async def send_frame(self, text: str):
        await self.send(text_data=text)

    async def ping(self):
        await self.send_frame(self.server.ping_frame)

    async def terminate(self, code=None, reason=None):
        self.is_open = False
        await self.close(code=code, reason=reason)
