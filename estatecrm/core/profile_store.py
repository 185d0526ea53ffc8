"""Profile store client.

Reads a principal's CRM columns from the ``profiles`` table. The production
implementation goes through Supabase's PostgREST API; tests use an in-memory fake.
"""

from typing import Optional, Protocol

import httpx
from pydantic import ValidationError

from estatecrm.core.config import settings
from estatecrm.core.exceptions import ProfileStoreError
from estatecrm.core.logging import logger
from estatecrm.schemas import CrmProfile

PROFILE_COLUMNS = "crm_type,crm_api_key,crm_settings"


class ProfileStore(Protocol):
    """Keyed by principal id, returns the stored CRM profile."""

    async def get_crm_profile(self, principal_id: str) -> Optional[CrmProfile]:
        """Return the principal's CRM profile, or None if there is no profile row.

        Raises:
            ProfileStoreError: If the store cannot be read.
        """
        ...


class SupabaseProfileStore:
    """Profile store backed by Supabase PostgREST (``GET /rest/v1/profiles``)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Supabase project URL, defaults to settings
            service_role_key: Key with read access to profiles, defaults to settings
            timeout: Request timeout in seconds, defaults to settings
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.service_role_key = (
            settings.SUPABASE_SERVICE_ROLE_KEY if service_role_key is None else service_role_key
        )
        self.timeout = timeout or settings.SUPABASE_TIMEOUT_SECONDS
        self._transport = transport

    async def get_crm_profile(self, principal_id: str) -> Optional[CrmProfile]:
        """Read the profile row of the principal."""
        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Accept": "application/json",
        }
        params = {"select": PROFILE_COLUMNS, "user_id": f"eq.{principal_id}", "limit": 1}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}/rest/v1/profiles", headers=headers, params=params
                )
        except httpx.TransportError as e:
            raise ProfileStoreError(f"Failed to fetch profile: {type(e).__name__}") from e

        if not response.is_success:
            logger.error(f"Profile store answered {response.status_code} for {principal_id}")
            raise ProfileStoreError(f"Failed to fetch profile: HTTP {response.status_code}")

        try:
            rows = response.json()
        except ValueError as e:
            raise ProfileStoreError("Failed to fetch profile: non-JSON response") from e

        if not isinstance(rows, list):
            raise ProfileStoreError("Failed to fetch profile: unexpected response shape")
        if not rows:
            return None
        try:
            return CrmProfile.model_validate(rows[0])
        except ValidationError as e:
            raise ProfileStoreError(
                f"Failed to fetch profile: invalid profile row ({e.error_count()} errors)"
            ) from e
