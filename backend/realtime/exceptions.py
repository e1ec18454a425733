"""Custom exceptions for the realtime servers."""


class RealtimeError(Exception):
    """Base class for realtime errors."""
    pass


# ---------------------- Authentication ----------------------

class WebSocketAuthError(RealtimeError):
    """Raised when a notification socket cannot be bound to a user.

    ``close_reason`` is sent with the 1008 close frame.
    """

    close_reason = "Invalid token"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.close_reason)
        self.detail = detail or self.close_reason


class MissingTokenError(WebSocketAuthError):
    """Raised when the connection URL carries no token or an empty one."""

    close_reason = "Authentication required"


class InvalidTokenError(WebSocketAuthError):
    """Raised when the token fails verification or names no user."""

    close_reason = "Invalid token"


# ---------------------- Inbound frames ----------------------

class MalformedMessageError(RealtimeError):
    """Raised for inbound frames that cannot be handled.

    ``message`` is reported back to the client in an error frame.
    """

    default_message = "Invalid message format"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingFieldsError(MalformedMessageError):
    """Raised when a location update lacks one of its required fields."""

    default_message = "Missing required fields: vehicleId, lat, lng"


class InvalidLocationError(MalformedMessageError):
    """Raised when lat/lng are present but not finite numbers."""

    default_message = "Invalid location values: lat and lng must be numbers"
