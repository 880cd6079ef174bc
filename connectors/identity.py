"""
Module: connectors.identity

Identity providers: a static one for the demo API and tests, and one that
asks the hosted auth endpoint who owns the current access token.
"""

import logging

import httpx

from connectors.base import PROFILES, IdentityProvider, InventoryStore
from models.exceptions import AuthError
from models.identity import AuthenticatedUser, Profile

logger = logging.getLogger(__name__)


class StaticIdentityProvider(IdentityProvider):
    """Returns a fixed user/profile pair; either may be None (signed out)."""

    def __init__(self, user: AuthenticatedUser | None = None, profile: Profile | None = None):
        self.user = user
        self.profile = profile

    async def get_user(self) -> AuthenticatedUser | None:
        return self.user

    async def get_profile(self) -> Profile | None:
        return self.profile

    def sign_out(self) -> None:
        self.user = None
        self.profile = None


class RestIdentityProvider(IdentityProvider):
    """
    Resolves the user from ``/auth/v1/user`` and the profile from the
    ``profiles`` table (``profiles.user_id = user.id``). Results are cached
    for the lifetime of the provider, i.e. one session.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: str | None,
        store: InventoryStore,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.auth_url = f"{base_url.rstrip('/')}/auth/v1/user"
        self.api_key = api_key
        self.access_token = access_token
        self.store = store
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._user: AuthenticatedUser | None = None
        self._profile: Profile | None = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_user(self) -> AuthenticatedUser | None:
        if self._user is not None:
            return self._user
        if not self.access_token:
            logger.info("No access token configured; treating session as signed out.")
            return None
        try:
            response = await self._client.get(
                self.auth_url,
                headers={"apikey": self.api_key, "Authorization": f"Bearer {self.access_token}"},
            )
        except httpx.HTTPError as exc:
            raise AuthError(f"Auth service unreachable: {exc}") from exc
        if response.status_code in (401, 403):
            logger.warning("Access token rejected by auth service.")
            return None
        if response.is_error:
            raise AuthError(f"Auth service error: {response.status_code} {response.text[:100]}")
        data = response.json()
        metadata = data.get("user_metadata") or {}
        self._user = AuthenticatedUser(
            id=data["id"], email=data.get("email"), username=metadata.get("username")
        )
        return self._user

    async def get_profile(self) -> Profile | None:
        if self._profile is not None:
            return self._profile
        user = await self.get_user()
        if user is None:
            return None
        rows = await self.store.select(PROFILES, filters={"user_id": user.id})
        if not rows:
            logger.warning(f"No profile found for user {user.id}")
            return None
        self._profile = Profile.model_validate(rows[0])
        return self._profile
