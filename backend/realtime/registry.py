"""
Connection bookkeeping shared by both realtime servers.

A "connection" here is any object exposing:
    is_open                 False once the transport has closed
    send_frame(text)        coroutine sending one text frame
    ping()                  coroutine sending one heartbeat
    terminate()             coroutine closing the transport from our side
The Channels consumers in ``realtime.consumers`` are the production
implementation.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)


class ConnectionRole(str, Enum):
    """What a connection is used for, set by the first relevant message."""
    UNBOUND = "unbound"
    VIEWER = "viewer"
    PRODUCER = "producer"
    SUBSCRIBER = "subscriber"  # authenticated notification socket


class ConnectionRegistry:
    """Maps an identity to the set of its live connections.

    An identity is present only while it has at least one connection.
    """

    def __init__(self):
        self._connections: Dict[str, Set[Any]] = {}

    def add(self, identity: str, connection: Any) -> int:
        """Register a connection and return how many the identity now has."""
        connections = self._connections.setdefault(identity, set())
        connections.add(connection)
        return len(connections)

    def remove(self, identity: str, connection: Any) -> int:
        """Unregister a connection and return how many the identity has left."""
        connections = self._connections.get(identity)
        if connections is None:
            return 0
        connections.discard(connection)
        if not connections:
            del self._connections[identity]
            return 0
        return len(connections)

    def get(self, identity: str) -> List[Any]:
        return list(self._connections.get(identity, ()))

    def count(self, identity: str) -> int:
        return len(self._connections.get(identity, ()))

    def identities(self) -> List[str]:
        return list(self._connections)

    def all_connections(self) -> List[Any]:
        return [conn for conns in self._connections.values() for conn in conns]

    def __contains__(self, identity: str) -> bool:
        return identity in self._connections

    def __len__(self) -> int:
        return len(self._connections)


# ---------------------- Periodic Tasks ----------------------

class PeriodicTask:
    """Runs ``callback`` every ``interval`` seconds on the running event loop."""

    def __init__(self, name: str, interval: float, callback: Callable[[], Awaitable[Any]]):
        self.name = name
        self.interval = interval
        self.callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the loop; a no-op if it is already running."""
        if self.is_running:
            return
        logger.info("Starting %s (interval=%ss)", self.name, self.interval)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self):
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.callback()
            except Exception:
                logger.exception("%s run failed", self.name)


# ---------------------- Liveness ----------------------

class LivenessMonitor:
    """
    Heartbeat sweep that reaps connections whose transport is gone.

    Dead peers are detected by the ASGI server's own WebSocket ping/pong,
    which ends in a close and the consumer's ``disconnect``. This sweep is the
    backstop: every open connection gets an informational ping, and a
    connection is reaped only when it is no longer open or the ping raised.
    Clients never have to answer the ping.
    """

    def __init__(
        self,
        name: str,
        get_connections: Callable[[], Iterable[Any]],
        on_dead: Callable[[Any], Awaitable[Any]],
        interval: float = 30,
    ):
        self.name = name
        self._get_connections = get_connections
        self._on_dead = on_dead
        self._task = PeriodicTask(f"{name} liveness sweep", interval, self.sweep)

    @property
    def interval(self) -> float:
        return self._task.interval

    @property
    def is_running(self) -> bool:
        return self._task.is_running

    def start(self):
        self._task.start()

    async def stop(self):
        await self._task.stop()

    async def sweep(self) -> int:
        """Run one sweep and return the number of connections reaped."""
        reaped = 0
        for connection in list(self._get_connections()):
            if connection.is_open:
                try:
                    await connection.ping()
                    continue
                except Exception as e:
                    logger.warning("%s: ping failed for %s: %s", self.name, connection, e)
                    await self._terminate(connection)
            else:
                logger.info("%s: reaping closed connection %s", self.name, connection)

            await self._on_dead(connection)
            reaped += 1
        return reaped

    async def _terminate(self, connection: Any):
        try:
            await connection.terminate()
        except Exception as e:
            logger.warning("%s: terminate failed for %s: %s", self.name, connection, e)
