"""Identity service client.

Validates a caller's bearer token and yields the principal it belongs to. The
production implementation asks Supabase Auth; tests substitute a fake.
"""

from typing import Optional, Protocol

import httpx

from estatecrm.core.config import settings
from estatecrm.core.exceptions import AuthenticationError, IdentityServiceError
from estatecrm.core.logging import logger
from estatecrm.schemas import Principal


class IdentityService(Protocol):
    """Resolves a bearer token to a principal."""

    async def authenticate(self, token: str) -> Principal:
        """Return the principal owning the token.

        Raises:
            AuthenticationError: If the token is invalid or expired.
            IdentityServiceError: If the identity service itself fails.
        """
        ...


class SupabaseIdentityService:
    """Identity service backed by Supabase Auth (``GET /auth/v1/user``)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Supabase project URL, defaults to settings
            api_key: Supabase key sent as ``apikey``, defaults to the service role key
            timeout: Request timeout in seconds, defaults to settings
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.api_key = settings.SUPABASE_SERVICE_ROLE_KEY if api_key is None else api_key
        self.timeout = timeout or settings.SUPABASE_TIMEOUT_SECONDS
        self._transport = transport

    async def authenticate(self, token: str) -> Principal:
        """Validate the token against Supabase Auth."""
        if not token:
            raise AuthenticationError("Authentication required")

        headers = {"apikey": self.api_key, "Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.TransportError as e:
            logger.error(f"Identity service unreachable: {type(e).__name__}")
            raise IdentityServiceError(f"Identity service unreachable: {type(e).__name__}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError()
        if not response.is_success:
            logger.error(f"Identity service answered {response.status_code}")
            raise IdentityServiceError(f"Identity service answered {response.status_code}")

        try:
            user = response.json()
        except ValueError as e:
            raise IdentityServiceError("Identity service returned a non-JSON response") from e

        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise AuthenticationError()
        return Principal(id=str(user_id), email=user.get("email"))
