"""Dependencies that are used in the API endpoints."""

import uuid
from functools import lru_cache

from fastapi import Request

from estatecrm.api.context import ApiContext
from estatecrm.core.crm_contacts_service import CrmContactsService
from estatecrm.core.identity_service import SupabaseIdentityService
from estatecrm.core.logging import logger
from estatecrm.core.profile_store import SupabaseProfileStore


async def get_context(request: Request) -> ApiContext:
    """Build the request context from the id assigned by the request id middleware."""
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return ApiContext(
        request_id=request_id,
        logger=logger.with_context(request_id=request_id),
    )


@lru_cache
def get_crm_contacts_service() -> CrmContactsService:
    """The contacts service wired to the Supabase identity service and profile store.

    The service is stateless, so one instance serves all requests.
    """
    return CrmContactsService(
        identity_service=SupabaseIdentityService(),
        profile_store=SupabaseProfileStore(),
    )
