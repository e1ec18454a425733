"""Vehicle-location WebSocket consumer, shared by producers and viewers."""

from realtime.servers import get_vehicle_location_server

from .base import BaseConsumer


class VehicleLocationConsumer(BaseConsumer):
    """
    WebSocket consumer for ``/ws/vehicle-location`` (unauthenticated).

    A vehicle becomes a producer by sending ``update_location``; a map screen
    becomes a viewer by sending ``subscribe``. Both get the current snapshot
    on connect.
    """

    def get_default_server(self):
        return get_vehicle_location_server()

    async def on_connect(self):
        await self.server.connect(self)

    async def server_disconnect(self):
        await self.server.disconnect(self)
