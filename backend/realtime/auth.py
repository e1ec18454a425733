"""Bearer-token verification for notification sockets."""

import logging
from typing import Optional, Sequence

from rest_framework_simplejwt.backends import TokenBackend
from rest_framework_simplejwt.exceptions import TokenBackendError
from rest_framework_simplejwt.settings import api_settings

from .conf import get_realtime_setting
from .exceptions import InvalidTokenError

logger = logging.getLogger(__name__)


class JWTTokenVerifier:
    """
    Verify a JWT and extract the user id.

    Uses the SIMPLE_JWT signing settings by default. Tokens issued by the
    mobile auth flow carry ``userId``; older ones ``id``; simplejwt's own
    access tokens ``user_id``. The first non-empty claim wins.
    """

    def __init__(
        self,
        signing_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        user_id_claims: Optional[Sequence[str]] = None,
    ):
        self.backend = TokenBackend(
            algorithm or api_settings.ALGORITHM,
            signing_key=signing_key or api_settings.SIGNING_KEY,
            verifying_key=api_settings.VERIFYING_KEY,
            audience=api_settings.AUDIENCE,
            issuer=api_settings.ISSUER,
            leeway=api_settings.LEEWAY,
        )
        self.user_id_claims = tuple(user_id_claims or get_realtime_setting("USER_ID_CLAIMS"))

    def verify(self, token: str) -> str:
        try:
            payload = self.backend.decode(token, verify=True)
        except TokenBackendError as e:
            logger.debug("JWT verification failed: %s", e)
            raise InvalidTokenError(str(e)) from e

        for claim in self.user_id_claims:
            user_id = payload.get(claim)
            if user_id:
                return str(user_id)
        raise InvalidTokenError("Token has no user id claim")
