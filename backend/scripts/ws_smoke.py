"""End-to-end smoke check for both realtime sockets.

Prerequisites:
1. `daphne app_backend.asgi:application` (or `py manage.py runserver`) must be running.
2. Install dependencies once: `py -m pip install requests websocket-client`.
3. For the notification leg, export SMOKE_USER_ID with SMOKE_USER_TOKEN (a JWT
   for that user), and SMOKE_ADMIN_TOKEN (a JWT for a staff user).

The script will:
- Open a viewer and a producer on /ws/vehicle-location.
- Send one location update and wait for the ack and the viewer broadcast.
- Close the producer and wait for vehicle_removed on the viewer.
- Open /ws/notifications as the user, push via REST as admin, wait for the frame.
"""

from __future__ import annotations

import json
import os
import sys
import time
import uuid

import requests
import websocket  # type: ignore

BASE_URL = os.environ.get("SMOKE_BASE_URL", "http://127.0.0.1:8000")
WS_URL = BASE_URL.replace("http", "ws", 1)
API_ROOT = f"{BASE_URL}/api"

PICKUP_COORDS = {
    "lat": 36.8065,
    "lng": 10.1815,
}


def _recv_event(ws: websocket.WebSocket, key: str, expected: str, timeout: float = 5.0) -> dict:
    """Read frames until one whose ``key`` equals ``expected`` (heartbeat pings are skipped)."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        ws.settimeout(max(deadline - time.time(), 0.1))
        payload = json.loads(ws.recv())
        if payload.get(key) == "ping":
            continue
        if payload.get(key) == expected:
            return payload
        print(f"[WS] Skipping payload: {payload}")
    raise TimeoutError(f"No {expected!r} frame within {timeout}s")


def check_vehicle_location() -> None:
    vehicle_id = f"smoke-{uuid.uuid4().hex[:8]}"

    viewer = websocket.create_connection(f"{WS_URL}/ws/vehicle-location")
    viewer.send(json.dumps({"event": "subscribe"}))
    producer = websocket.create_connection(f"{WS_URL}/ws/vehicle-location")
    print("[WS] Viewer and producer connected")

    producer.send(json.dumps({
        "event": "update_location",
        "data": {"vehicleId": vehicle_id, **PICKUP_COORDS},
    }))
    ack = _recv_event(producer, "event", "location_ack")
    print(f"[WS] Ack: {ack}")

    position = _recv_event(viewer, "event", "vehicle_position")
    assert position["data"]["vehicleId"] == vehicle_id, position
    print(f"[WS] Viewer got position: {position['data']}")

    resp = requests.get(f"{API_ROOT}/vehicles/active/", timeout=10)
    resp.raise_for_status()
    print(f"[HTTP] Active vehicles: {resp.json()['count']}")

    producer.close()
    removed = _recv_event(viewer, "event", "vehicle_removed")
    assert removed["data"]["vehicleId"] == vehicle_id, removed
    print("[WS] Viewer got vehicle_removed")
    viewer.close()


def check_notifications() -> None:
    user_id = os.environ.get("SMOKE_USER_ID")
    user_token = os.environ.get("SMOKE_USER_TOKEN")
    admin_token = os.environ.get("SMOKE_ADMIN_TOKEN")
    if not (user_id and user_token and admin_token):
        print("[WS] SMOKE_USER_ID / SMOKE_USER_TOKEN / SMOKE_ADMIN_TOKEN not set; skipping notifications")
        return

    ws = websocket.create_connection(f"{WS_URL}/ws/notifications?token={user_token}")
    hello = _recv_event(ws, "type", "connected")
    print(f"[WS] {hello['message']}")
    resp = requests.post(
        f"{API_ROOT}/notifications/push/",
        json={"user": user_id, "type": "SYSTEM", "title": "Smoke test", "message": "Hello from ws_smoke"},
        headers={"Authorization": f"Bearer {admin_token}"},
        timeout=10,
    )
    resp.raise_for_status()
    print(f"[HTTP] Push response: {resp.json()['delivered']}")

    notification = _recv_event(ws, "type", "notification")
    print(f"[WS] Received notification: {notification['data']['title']}")
    ws.close()


def main() -> int:
    try:
        check_vehicle_location()
        check_notifications()
    except Exception as exc:
        print(f"Smoke test failed: {exc}")
        return 1
    print("Smoke test passed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
