from __future__ import annotations

import time
from typing import Callable

import httpx
import structlog

from .errors import ValidationError, error_from_status

logger = structlog.get_logger("blackduck_mcp.auth")

AUTHENTICATE_PATH = "/api/tokens/authenticate"
AUTHENTICATE_ACCEPT = "application/vnd.blackducksoftware.user-4+json"

# Bearer tokens live for two hours unless the server says otherwise.
DEFAULT_TOKEN_TTL = 2 * 60 * 60
REFRESH_MARGIN = 5 * 60

_PLACEHOLDERS = ("your-api-token", "your-token", "token-here", "xxx", "yyy")


def validate_api_token(token: str) -> None:
    if not token or not token.strip():
        raise ValidationError("API token cannot be empty")
    if len(token) < 10:
        raise ValidationError("API token appears to be invalid (too short)")
    lowered = token.lower()
    if any(p in lowered for p in _PLACEHOLDERS):
        raise ValidationError(
            "Please replace the placeholder API token with your actual Black Duck API token"
        )


class BearerTokenCache:
    """Time-bounded holder for the bearer token issued by Black Duck.

    The token is considered stale ``REFRESH_MARGIN`` seconds before it
    actually expires, so requests never race the server-side expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._token: str | None = None
        self._expires_at = 0.0

    def get(self) -> str | None:
        if self._token and self._clock() < self._expires_at - REFRESH_MARGIN:
            return self._token
        return None

    def store(self, token: str, ttl: float = DEFAULT_TOKEN_TTL) -> None:
        self._token = token
        self._expires_at = self._clock() + ttl

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = 0.0


async def authenticate(http: httpx.AsyncClient, api_token: str, cache: BearerTokenCache) -> str:
    """Exchange the user access token for a bearer token, reusing the cached one."""
    validate_api_token(api_token)

    cached = cache.get()
    if cached:
        return cached

    try:
        r = await http.post(
            AUTHENTICATE_PATH,
            headers={"Authorization": f"token {api_token}", "Accept": AUTHENTICATE_ACCEPT},
        )
        if r.status_code == 401:
            raise ValidationError(
                "Invalid API token. Please check your BLACK_DUCK_API_TOKEN in .env file. "
                "Generate a new token from: Black Duck > User Profile > My Access Tokens"
            )
        if r.status_code >= 400:
            raise error_from_status(r.status_code, r.text or None)

        data = r.json()
        bearer = data.get("bearerToken")
        if not bearer:
            raise ValidationError("No bearer token returned from authentication endpoint")
    except Exception:
        cache.invalidate()
        raise

    expires_ms = data.get("expiresInMilliseconds")
    cache.store(bearer, expires_ms / 1000 if expires_ms else DEFAULT_TOKEN_TTL)
    logger.debug("Obtained bearer token", ttl_ms=expires_ms)
    return bearer
