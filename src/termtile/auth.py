"""Connection authorization

A client proves it knows the access token either by presenting the
``token`` query parameter or by carrying the auth cookie, whose value is
an HMAC-SHA256 signature of the token keyed by the token itself.
"""

import hashlib
import hmac
from typing import Protocol

from fastapi.requests import HTTPConnection
from fastapi.responses import Response

from . import config


class Authorizer(Protocol):
    def is_authorized(self, conn: HTTPConnection) -> bool: ...


def sign_token(token: str) -> str:
    return hmac.new(token.encode(), token.encode(), hashlib.sha256).hexdigest()


class TokenAuthorizer:
    """Token/cookie authorizer for HTTP requests and websocket upgrades"""

    def __init__(
        self,
        token: str | None = None,
        enabled: bool | None = None,
        cookie_name: str | None = None,
        cookie_max_age: int | None = None,
    ):
        self.token = token or config.AUTH_TOKEN
        self.enabled = config.AUTH_ENABLED if enabled is None else enabled
        self.cookie_name = cookie_name or config.AUTH_COOKIE_NAME
        self.cookie_max_age = config.AUTH_COOKIE_MAX_AGE_SECONDS if cookie_max_age is None else cookie_max_age
        self._signature = sign_token(self.token)

    def check_token(self, candidate: str | None) -> bool:
        return bool(candidate) and hmac.compare_digest(candidate, self.token)

    def is_authorized(self, conn: HTTPConnection) -> bool:
        if not self.enabled:
            return True
        cookie = conn.cookies.get(self.cookie_name)
        if cookie and hmac.compare_digest(cookie, self._signature):
            return True
        return self.check_token(conn.query_params.get("token"))

    def set_cookie(self, response: Response) -> None:
        """Attach the signed auth cookie to ``response``."""
        response.set_cookie(
            self.cookie_name,
            self._signature,
            max_age=self.cookie_max_age,
            httponly=True,
            samesite="lax",
            path="/",
        )

