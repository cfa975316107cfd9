"""Resolves the authenticated principal for a request.

Identity is delegated to an external Supabase-style auth service: the access
token (bearer header or session cookie) is exchanged for the user record and
only its id is kept.
"""

import logging

import httpx
from fastapi import Depends, Request

from docchat.core.config import settings
from docchat.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class IdentityProvider:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.auth_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.auth_api_key
        self._transport = transport

    def _headers(self, token: str) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    async def get_user_id(self, token: str) -> str | None:
        """Return the user id for an access token, or None if it is not valid."""
        if not self.base_url:
            logger.warning("Identity provider URL not configured. Set DOCCHAT_AUTH_URL.")
            return None

        async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
            try:
                resp = await client.get(f"{self.base_url}/auth/v1/user", headers=self._headers(token))
            except httpx.HTTPError as e:
                logger.warning(f"Identity provider request failed: {e}")
                return None

        if resp.status_code != 200:
            logger.debug(f"Identity provider rejected token ({resp.status_code})")
            return None
        user_id = (resp.json() or {}).get("id")
        return str(user_id) if user_id else None


def extract_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(settings.session_cookie) or None


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider()


async def get_current_user_id(
    request: Request, identity: IdentityProvider = Depends(get_identity_provider)
) -> str:
    """FastAPI dependency: the caller's user id, or ``Unauthorized``."""
    token = extract_token(request)
    if not token:
        raise Unauthorized()
    user_id = await identity.get_user_id(token)
    if not user_id:
        raise Unauthorized()
    return user_id
