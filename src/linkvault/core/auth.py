"""Resolve bearer tokens to sessions.

Token issuance belongs to the auth service; this module only asks who a
token belongs to.
"""

import hmac
import logging
from typing import Optional

import httpx

from ..models.config import AppConfig, EnvSettings
from ..models.session import Session

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Missing, invalid or expired credentials."""

    pass


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer ...`` header."""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        return token or None
    return None


class SessionResolver:
    """Maps a bearer token to the caller's ``Session``.

    File backend: the token must equal ``API_TOKEN`` and maps to
    ``local_owner_id``. Rest backend: the hosted auth service is asked for the
    token's user.
    """

    def __init__(
        self,
        config: AppConfig,
        env_settings: EnvSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.env_settings = env_settings
        self.transport = transport

    async def resolve(self, token: Optional[str]) -> Session:
        if not token:
            raise AuthError("Missing bearer token")

        if self.config.store_backend == "rest":
            return await self._resolve_remote(token)
        return self._resolve_local(token)

    def _resolve_local(self, token: str) -> Session:
        expected = self.env_settings.api_token
        if not expected:
            raise AuthError("API_TOKEN is not configured")
        if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
            raise AuthError("Invalid token")
        return Session(user_id=self.config.local_owner_id, access_token=token)

    async def _resolve_remote(self, token: str) -> Session:
        url = f"{self.config.service_url.rstrip('/')}/auth/v1/user"
        headers = {"Authorization": f"Bearer {token}"}
        if self.env_settings.service_anon_key:
            headers["apikey"] = self.env_settings.service_anon_key

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable: {e}")
            raise AuthError(f"Auth service unreachable: {e}") from e

        if response.status_code != 200:
            raise AuthError("Invalid or expired session")

        try:
            user = response.json()
            return Session(user_id=user["id"], access_token=token, email=user.get("email"))
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(f"Unexpected auth service response: {e}") from e
