"""
Vehicle position fan-out over ``/ws/vehicle-location``.

Producers send ``update_location`` frames; viewers ``subscribe`` and receive
every position change. The latest position per vehicle is held in memory only:
it is dropped when its producer disconnects or when it goes stale.

Architecture:
1. Producer frame -> upsert position (last write wins) -> broadcast to viewers -> ack
2. New connection or subscribe -> replay every known position to it
3. Producer disconnect / staleness sweep -> drop position -> broadcast vehicle_removed
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Set

from . import protocol
from .exceptions import MalformedMessageError
from .protocol import VehiclePosition
from .registry import ConnectionRole, LivenessMonitor, PeriodicTask

logger = logging.getLogger(__name__)


class VehicleLocationFanoutServer:
    """Owns vehicle positions, the producer index and the viewer set."""

    path = "/ws/vehicle-location"
    ping_frame = protocol.LOCATION_PING

    def __init__(
        self,
        heartbeat_interval: float = 30,
        stale_sweep_interval: float = 10,
        stale_after: float = 30,
        default_vehicle_type: str = protocol.DEFAULT_VEHICLE_TYPE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_after = stale_after
        self.default_vehicle_type = default_vehicle_type
        self.clock = clock

        self.positions: Dict[str, VehiclePosition] = {}
        # vehicle id -> producing connection; the connection keeps the
        # reverse side in ``connection.vehicle_ids``.
        self.producers: Dict[str, Any] = {}
        self.viewers: Set[Any] = set()
        self.connections: Set[Any] = set()

        # Serializes mutation + broadcast so a snapshot replay never interleaves
        # with a concurrent update for the same viewer.
        self._lock = asyncio.Lock()

        self.liveness = LivenessMonitor(
            "vehicle-location",
            lambda: self.connections,
            self.disconnect,
            interval=heartbeat_interval,
        )
        self.stale_sweeper = PeriodicTask("vehicle staleness sweep", stale_sweep_interval, self.evict_stale)

    # ---------------------- Lifecycle ----------------------

    def start(self):
        self.liveness.start()
        self.stale_sweeper.start()

    async def stop(self):
        await self.liveness.stop()
        await self.stale_sweeper.stop()

    @property
    def is_running(self) -> bool:
        return self.liveness.is_running and self.stale_sweeper.is_running

    # ---------------------- Connection Handling ----------------------

    async def connect(self, connection: Any):
        """Track a new connection and replay the current snapshot to it."""
        connection.role = ConnectionRole.UNBOUND
        connection.vehicle_ids = set()
        async with self._lock:
            self.connections.add(connection)
            await self._send_snapshot(connection)

    async def disconnect(self, connection: Any):
        """Drop a connection and every vehicle it was still producing.

        Called from the transport close handler and from the liveness sweep;
        safe to call more than once.
        """
        async with self._lock:
            self.connections.discard(connection)
            self.viewers.discard(connection)

            owned = getattr(connection, "vehicle_ids", None) or set()
            removed = [vid for vid in owned if self.producers.get(vid) is connection]
            owned.clear()

            for vehicle_id in removed:
                del self.producers[vehicle_id]
                self.positions.pop(vehicle_id, None)
                logger.info("Vehicle %s stopped sharing (producer disconnected)", vehicle_id)
                await self._broadcast(protocol.vehicle_removed_frame(vehicle_id))

    async def receive_frame(self, connection: Any, raw: Any):
        """Handle one inbound frame; malformed input is answered in-band."""
        try:
            frame = protocol.decode_frame(raw)
            await self.handle_message(connection, frame)
        except MalformedMessageError as e:
            logger.warning("Rejected vehicle-location frame: %s", e.message)
            await self._send(connection, protocol.location_error_frame(e.message))

    async def handle_message(self, connection: Any, frame: Dict[str, Any]):
        event = frame.get("event")

        if event == "update_location":
            await self.update_location(connection, frame.get("data"))
        elif event == "subscribe":
            await self.subscribe(connection)
        elif event == "pong":
            pass
        else:
            logger.info("Unknown vehicle-location event: %s", event)

    # ---------------------- Message Handlers ----------------------

    async def update_location(self, connection: Any, payload: Any) -> VehiclePosition:
        """Store a producer's position, fan it out and acknowledge it.

        Raises MalformedMessageError (before touching any state) when the
        payload is unusable.
        """
        position = VehiclePosition.from_payload(
            payload,
            received_at=self.clock(),
            default_type=self.default_vehicle_type,
        )
        vehicle_id = position.vehicle_id

        async with self._lock:
            self.positions[vehicle_id] = position

            previous = self.producers.get(vehicle_id)
            if previous is not None and previous is not connection:
                logger.info("Vehicle %s taken over by a new connection", vehicle_id)
                previous.vehicle_ids.discard(vehicle_id)
            self.producers[vehicle_id] = connection
            connection.vehicle_ids.add(vehicle_id)
            if connection.role is ConnectionRole.UNBOUND:
                connection.role = ConnectionRole.PRODUCER

            await self._broadcast(protocol.vehicle_position_frame(position))

        await self._send(connection, protocol.location_ack_frame(vehicle_id))
        return position

    async def subscribe(self, connection: Any):
        """Add a viewer (idempotent) and replay the snapshot to it."""
        async with self._lock:
            self.viewers.add(connection)
            if connection.role is ConnectionRole.UNBOUND:
                connection.role = ConnectionRole.VIEWER
            await self._send_snapshot(connection)

    # ---------------------- Staleness ----------------------

    async def evict_stale(self, now: Optional[float] = None) -> List[str]:
        """Remove positions not refreshed within ``stale_after`` seconds."""
        now = self.clock() if now is None else now
        async with self._lock:
            stale = [
                vehicle_id
                for vehicle_id, position in self.positions.items()
                if now - position.last_update > self.stale_after
            ]
            for vehicle_id in stale:
                del self.positions[vehicle_id]
                producer = self.producers.pop(vehicle_id, None)
                if producer is not None:
                    producer.vehicle_ids.discard(vehicle_id)
                await self._broadcast(protocol.vehicle_removed_frame(vehicle_id))

        if stale:
            logger.info("Evicted %s stale vehicles: %s", len(stale), ", ".join(stale))
        return stale

    # ---------------------- Fan-out ----------------------

    async def _send(self, connection: Any, message: str) -> bool:
        if not connection.is_open:
            return False
        try:
            await connection.send_frame(message)
            return True
        except Exception as e:
            logger.warning("Error sending to vehicle-location client: %s", e)
            return False

    async def _broadcast(self, message: str) -> int:
        # Failed viewers stay in the set; the close handler and the liveness
        # sweep are the only places that remove them.
        sent = 0
        for viewer in list(self.viewers):
            if await self._send(viewer, message):
                sent += 1
        return sent

    async def _send_snapshot(self, connection: Any):
        for position in list(self.positions.values()):
            await self._send(connection, protocol.vehicle_position_frame(position))

    # ---------------------- Introspection ----------------------

    def active_vehicles(self) -> List[Dict[str, Any]]:
        """Current positions with the seconds since each was last updated."""
        now = self.clock()
        return [
            {**position.to_wire(), "age": round(now - position.last_update, 3)}
            for position in self.positions.values()
        ]

    def stats(self) -> Dict[str, Any]:
        return {
            "vehicles": len(self.positions),
            "viewers": len(self.viewers),
            "connections": len(self.connections),
            "heartbeat_running": self.liveness.is_running,
            "stale_sweep_running": self.stale_sweeper.is_running,
        }
