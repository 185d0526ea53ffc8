"""Base CRM adapter class."""

from abc import abstractmethod
from typing import Any, ClassVar, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from estatecrm.core.config import settings
from estatecrm.core.credential_sanitizer import redact_secret, truncate
from estatecrm.core.datetime_utils import to_iso_timestamp, utc_now
from estatecrm.core.exceptions import NetworkError, ProviderHttpError, ProviderPayloadError
from estatecrm.core.logging import ContextualLogger, logger
from estatecrm.schemas.contact import Contact, CrmProvider
from estatecrm.schemas.crm_credentials import ProviderCredentials


def is_transient_error(error: BaseException) -> bool:
    """Whether a failed provider call is safe and useful to retry.

    The fetch is read-only, so retrying is safe; only network failures and 5xx
    answers are worth it.
    """
    if isinstance(error, NetworkError):
        return True
    if isinstance(error, ProviderHttpError):
        return error.is_transient
    return False


class BaseCRMAdapter:
    """Base class for all CRM adapters.

    An adapter owns one provider's authentication scheme, endpoint shape and
    response parsing. It performs a single GET per fetch (retried on transient
    failures) and normalizes the records into canonical contacts.
    """

    provider: ClassVar[CrmProvider]

    def __init__(
        self,
        credentials: ProviderCredentials,
        *,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        retry_max_wait: Optional[float] = None,
        error_body_max_chars: Optional[int] = None,
    ):
        """Initialize the adapter from credentials, with settings as defaults."""
        self.credentials = credentials
        self.page_size = settings.CRM_PAGE_SIZE if page_size is None else page_size
        self.timeout = settings.CRM_REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = settings.CRM_MAX_RETRIES if max_retries is None else max_retries
        self.retry_backoff = (
            settings.CRM_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        )
        self.retry_max_wait = (
            settings.CRM_RETRY_MAX_WAIT_SECONDS if retry_max_wait is None else retry_max_wait
        )
        self.error_body_max_chars = (
            settings.CRM_ERROR_BODY_MAX_CHARS
            if error_body_max_chars is None
            else error_body_max_chars
        )
        self._logger: Optional[ContextualLogger] = None

    @classmethod
    def create(cls, credentials: ProviderCredentials, **options: Any) -> "BaseCRMAdapter":
        """Create a new adapter instance for one request."""
        return cls(credentials, **options)

    @property
    def logger(self) -> ContextualLogger:
        """Get the logger for this adapter, falling back to the provider-labeled default."""
        if self._logger is not None:
            return self._logger
        return logger.with_context(crm_type=self.provider.value)

    def set_logger(self, contextual_logger: ContextualLogger) -> None:
        """Set a contextual logger for this adapter."""
        self._logger = contextual_logger.with_context(crm_type=self.provider.value)

    async def fetch_contacts(self, client: httpx.AsyncClient) -> List[Contact]:
        """Fetch the provider's first page of contacts and normalize them.

        Args:
            client: HTTP client used for the provider call

        Returns:
            Contacts in provider order

        Raises:
            NetworkError: If the call never completed, after retries
            ProviderHttpError: If the provider answered non-2xx (5xx after retries)
            ProviderPayloadError: If no contacts can be extracted from a 2xx body
        """
        fetched_at = to_iso_timestamp(utc_now())
        payload = await self._get_json(
            client,
            self.contacts_url(),
            headers=self.auth_headers(),
            params=self.contacts_params(),
        )
        records = self.extract_records(payload)
        return [self.normalize_record(record, fetched_at) for record in records]

    @abstractmethod
    def contacts_url(self) -> str:
        """URL of the provider's contact listing endpoint."""

    @abstractmethod
    def contacts_params(self) -> Dict[str, Any]:
        """Query parameters of the contact listing request."""

    def auth_headers(self) -> Dict[str, str]:
        """Headers carrying the credentials. Query-string schemes return none."""
        return {}

    @abstractmethod
    def extract_records(self, payload: Any) -> List[Any]:
        """Pull the raw record list out of a decoded response body."""

    @abstractmethod
    def normalize_record(self, record: Any, fetched_at: str) -> Contact:
        """Map one raw record to a canonical contact."""

    def _redact(self, text: str) -> str:
        return redact_secret(text, self.credentials.api_key)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            f"{self.provider.display_name} call failed (attempt {retry_state.attempt_number}), "
            f"retrying: {error}"
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception(is_transient_error),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_backoff, max=self.retry_max_wait),
            before_sleep=self._log_retry,
            reraise=True,
        )

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make a GET request to the provider, retrying transient failures."""
        payload: Any = None
        async for attempt in self._retrying():
            with attempt:
                payload = await self._get_json_once(client, url, headers, params)
        return payload

    async def _get_json_once(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Optional[Dict[str, str]],
        params: Optional[Dict[str, Any]],
    ) -> Any:
        display_name = self.provider.display_name
        try:
            response = await client.get(url, headers=headers, params=params, timeout=self.timeout)
        except httpx.TransportError as e:
            raise NetworkError(
                self.provider.value,
                self._redact(f"{display_name} request failed: {type(e).__name__}: {e}"),
            ) from e

        if not response.is_success:
            body = truncate(self._redact(response.text), self.error_body_max_chars)
            raise ProviderHttpError(self.provider.value, display_name, response.status_code, body)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderPayloadError(
                self.provider.value, f"{display_name} API returned a non-JSON response"
            ) from e
