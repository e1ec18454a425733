"""WebSocket middleware exposing the ``?token=`` query parameter to consumers."""

from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware


class QueryTokenMiddleware(BaseMiddleware):
    """
    Copy the bearer token from the querystring into ``scope["token"]``.

    Verification is left to the consumer so that a rejected socket can be
    accepted and then closed with a 1008 code and a readable reason.
    Blank values are treated as missing.
    """

    async def __call__(self, scope, receive, send):
        query_string = scope.get("query_string", b"").decode()
        params = parse_qs(query_string)

        token_list = params.get("token")
        scope["token"] = token_list[0] if token_list else None

        return await super().__call__(scope, receive, send)
