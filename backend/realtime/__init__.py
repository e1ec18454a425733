"""
Realtime app: in-memory WebSocket fan-out for notifications and vehicle positions.

This app provides:
- /ws/notifications: token-authenticated, per-user notification delivery
- /ws/vehicle-location: producer/viewer vehicle position broadcasting
- Heartbeat sweeps that reap dead sockets and a staleness sweep for positions
- Helpers for the HTTP layer to push notifications

Key Components:
    - registry.py: connection registry, periodic tasks, liveness monitor
    - notifications.py: NotificationFanoutServer and notify_* helpers
    - vehicles.py: VehicleLocationFanoutServer
    - protocol.py: wire frames and the Notification / VehiclePosition types
    - consumers/: Channels consumers adapting sockets to the servers

Usage:
    from realtime.notifications import notify_user, notify_all
    from realtime.servers import get_notification_server, get_vehicle_location_server
"""
