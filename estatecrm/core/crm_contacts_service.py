"""Service that fetches a principal's CRM contacts in the canonical shape.

Pipeline per call: authenticate -> resolve configuration -> select the adapter
for the provider -> one provider fetch -> paginate -> envelope. Every failure is
converted into a failure envelope here; nothing but cancellation escapes.
"""

from typing import Any, Callable, Dict, Optional, Type

import httpx

from estatecrm.core.config import settings
from estatecrm.core.config_resolver import ConfigurationResolver
from estatecrm.core.exceptions import (
    AuthenticationError,
    ConfigurationMissingError,
    CRMAdapterError,
    ExternalServiceError,
    UnsupportedProviderError,
)
from estatecrm.core.identity_service import IdentityService
from estatecrm.core.logging import ContextualLogger, logger
from estatecrm.core.pagination import paginate
from estatecrm.core.profile_store import ProfileStore
from estatecrm.platform.crm import BaseCRMAdapter, get_adapter_class
from estatecrm.schemas import (
    ContactsResponse,
    CrmProvider,
    ErrorResponse,
    Principal,
    ServiceResult,
)

FETCH_FAILED = "CRM contact fetch failed"
DEFAULT_LIMIT = 100


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of an ``Authorization`` header value, or None if there is none."""
    if not authorization:
        return None
    value = authorization.strip()
    scheme, _, credentials = value.partition(" ")
    if scheme.lower() == "bearer":
        value = credentials.strip()
    return value or None


def default_http_client() -> httpx.AsyncClient:
    """HTTP client for provider calls, with the configured timeout."""
    return httpx.AsyncClient(timeout=httpx.Timeout(settings.CRM_REQUEST_TIMEOUT_SECONDS))


def _failure(status_code: int, error: str, details: Optional[str] = None) -> ServiceResult:
    return ServiceResult(status_code=status_code, body=ErrorResponse(error=error, details=details))


class CrmContactsService:
    """Aggregates one principal's contacts from their configured CRM."""

    def __init__(
        self,
        identity_service: IdentityService,
        profile_store: ProfileStore,
        http_client_factory: Callable[[], httpx.AsyncClient] = default_http_client,
        adapter_lookup: Callable[[CrmProvider], Type[BaseCRMAdapter]] = get_adapter_class,
        adapter_options: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the service with its collaborators.

        Args:
            identity_service: Validates bearer tokens
            profile_store: Source of per-principal CRM configuration
            http_client_factory: Builds the client used for the provider call
            adapter_lookup: Maps a provider to its adapter class
            adapter_options: Keyword overrides passed to the adapter (retries, timeout, ...)
        """
        self.identity_service = identity_service
        self.resolver = ConfigurationResolver(profile_store)
        self.http_client_factory = http_client_factory
        self.adapter_lookup = adapter_lookup
        self.adapter_options = adapter_options or {}

    async def handle(
        self,
        authorization: Optional[str],
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        request_id: Optional[str] = None,
    ) -> ServiceResult:
        """Authenticate the caller and return a page of their CRM contacts.

        Args:
            authorization: The raw ``Authorization`` header
            limit: Maximum number of contacts in the page
            offset: Number of contacts to skip
            request_id: Request id for log correlation

        Returns:
            The envelope and the HTTP status it maps to
        """
        log = logger.with_context(request_id=request_id) if request_id else logger
        try:
            return await self._handle(authorization, limit, offset, log)
        except Exception:
            log.exception("Unexpected error in contacts request")
            return _failure(500, FETCH_FAILED, "Unexpected internal error")

    async def _handle(
        self,
        authorization: Optional[str],
        limit: int,
        offset: int,
        log: ContextualLogger,
    ) -> ServiceResult:
        token = extract_bearer_token(authorization)
        if token is None:
            log.info("Rejected contacts request without credentials")
            return _failure(401, "Authentication required")

        try:
            principal = await self.identity_service.authenticate(token)
        except AuthenticationError:
            log.info("Rejected contacts request with invalid credentials")
            return _failure(401, "Invalid authentication")
        except ExternalServiceError as e:
            log.error(f"Authentication unavailable: {e}")
            return _failure(500, FETCH_FAILED, e.message)

        return await self.fetch_for_principal(principal, limit=limit, offset=offset, log=log)

    async def fetch_for_principal(
        self,
        principal: Principal,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        log: ContextualLogger = logger,
    ) -> ServiceResult:
        """Return a page of contacts for an already authenticated principal."""
        log = log.with_context(principal_id=principal.id)

        try:
            credentials = await self.resolver.resolve(principal.id, log)
        except ConfigurationMissingError as e:
            return _failure(400, e.message)
        except ExternalServiceError as e:
            log.error(f"Profile lookup failed: {e}")
            return _failure(500, FETCH_FAILED, e.message)

        try:
            provider = CrmProvider.from_tag(credentials.crm_type)
        except UnsupportedProviderError as e:
            # Inconsistent with the 400 of missing configuration; kept until decided.
            log.warning(f"{e.message}; answering 500 although missing configuration answers 400")
            return _failure(500, FETCH_FAILED, e.message)

        log = log.with_context(crm_type=provider.value)
        log.info(f"Fetching contacts from {provider.value} CRM")

        try:
            adapter = self.adapter_lookup(provider).create(credentials, **self.adapter_options)
            adapter.set_logger(log)
            async with self.http_client_factory() as client:
                contacts = await adapter.fetch_contacts(client)
        except CRMAdapterError as e:
            log.error(f"{provider.display_name} contact fetch failed: {e.message}")
            return _failure(500, FETCH_FAILED, e.message)
        except Exception:
            log.exception(f"Unexpected error while fetching {provider.value} contacts")
            return _failure(500, FETCH_FAILED, "Unexpected internal error")

        page = paginate(contacts, limit=limit, offset=offset)
        log.info(f"Successfully fetched {page.total_count} contacts from {provider.value}")

        return ServiceResult(
            status_code=200,
            body=ContactsResponse(
                crm_type=provider.value,
                contacts=page.items,
                total_count=page.total_count,
                has_more=page.has_more,
            ),
        )
