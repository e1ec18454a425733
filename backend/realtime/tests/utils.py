"""Test doubles for the realtime connection interface."""

import json

from realtime.auth import JWTTokenVerifier


class FakeConnection:
    """In-memory stand-in for a consumer: records frames instead of sending them."""

    def __init__(self, name="conn", is_open=True, fail_sends=False):
        self.name = name
        self.is_open = is_open
        self.fail_sends = fail_sends
        self.user_id = None
        self.vehicle_ids = set()
        self.sent = []
        self.pings = 0
        self.terminated = False

    def __repr__(self):
        return f"<FakeConnection {self.name}>"

    async def send_frame(self, text):
        if self.fail_sends:
            raise ConnectionError("socket is gone")
        self.sent.append(json.loads(text))

    async def ping(self):
        if self.fail_sends:
            raise ConnectionError("socket is gone")
        self.pings += 1

    async def terminate(self, code=None, reason=None):
        self.terminated = True
        self.is_open = False

    def events(self, name):
        return [frame for frame in self.sent if frame.get("event") == name]

    def events_of_type(self, name):
        return [frame for frame in self.sent if frame.get("type") == name]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class StaticVerifier:
    """Maps known tokens to user ids; anything else is rejected."""

    def __init__(self, tokens):
        self.tokens = tokens

    def verify(self, token):
        from realtime.exceptions import InvalidTokenError
        try:
            return self.tokens[token]
        except KeyError:
            raise InvalidTokenError("unknown token")


def make_token(claims):
    return JWTTokenVerifier().backend.encode(claims)
