"""
Bearer token gate for the ingest route.
"""

import hmac
from typing import Callable, Optional

from fastapi import Request

from shared.errors import AuthenticationError
from shared.logging import get_logger

BEARER_PREFIX = "Bearer "


class BearerTokenAuth:
    """Compares the request's bearer token to the configured secret.

    Usable directly as a FastAPI dependency.
    """

    def __init__(self, token_getter: Callable[[], str]):
        self._token_getter = token_getter
        self.logger = get_logger("pushgateway.auth")

    def check(self, authorization: Optional[str]) -> None:
        """Raise AuthenticationError unless the header carries the secret."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthenticationError("no auth token")

        token = authorization[len(BEARER_PREFIX):]
        expected = self._token_getter()
        # An unset secret must not match an empty token
        if not expected or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
            self.logger.warning("Rejected bearer token")
            raise AuthenticationError("bad auth token")

    async def __call__(self, request: Request) -> None:
        self.check(request.headers.get("Authorization"))
