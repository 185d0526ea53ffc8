"""Common test fixtures and fakes."""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest
from pydantic import SecretStr

from estatecrm.core.crm_contacts_service import CrmContactsService
from estatecrm.core.exceptions import AuthenticationError
from estatecrm.schemas import CrmProfile, Principal, ProviderCredentials

VALID_TOKEN = "valid-token"
PRINCIPAL_ID = "user-1"
API_KEY = "sk-live-9f8e7d6c5b4a"

# Retry without sleeping between attempts
FAST_RETRY_OPTIONS = {"max_retries": 2, "retry_backoff": 0}

Outcome = Union[httpx.Response, Exception]


class FakeIdentityService:
    """Identity service accepting a fixed set of tokens."""

    def __init__(self, tokens: Optional[Dict[str, Principal]] = None):
        self.tokens = tokens if tokens is not None else {VALID_TOKEN: Principal(id=PRINCIPAL_ID)}
        self.calls: List[str] = []

    async def authenticate(self, token: str) -> Principal:
        self.calls.append(token)
        if token not in self.tokens:
            raise AuthenticationError()
        return self.tokens[token]


class InMemoryProfileStore:
    """Profile store holding profiles in a dict."""

    def __init__(self, profiles: Optional[Dict[str, CrmProfile]] = None):
        self.profiles = profiles or {}
        self.calls: List[str] = []

    async def get_crm_profile(self, principal_id: str) -> Optional[CrmProfile]:
        self.calls.append(principal_id)
        return self.profiles.get(principal_id)


class QueuedHandler:
    """httpx.MockTransport handler answering from a queue of outcomes.

    Outcomes are consumed in order; the last one repeats. Exceptions are raised
    as if the transport failed.
    """

    def __init__(self, *outcomes: Outcome):
        self.outcomes = list(outcomes)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def client_factory(handler: Callable) -> Callable[[], httpx.AsyncClient]:
    """Build an http_client_factory serving every request from the handler."""

    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


def http_scope(method="POST", path="/crm/contacts", headers=None):
    """Build the ASGI scope of a request to the assembled app."""
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.3"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "root_path": "",
        "headers": [(b"host", b"testserver"), *(headers or [])],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


def make_profile(
    crm_type: Optional[str] = "hubspot",
    api_key: Optional[str] = API_KEY,
    crm_settings: Optional[Dict[str, Any]] = None,
) -> CrmProfile:
    """Create a stored CRM profile."""
    return CrmProfile(
        crm_type=crm_type,
        crm_api_key=SecretStr(api_key) if api_key is not None else None,
        crm_settings=crm_settings,
    )


def make_credentials(
    crm_type: str = "hubspot", crm_settings: Optional[Dict[str, Any]] = None
) -> ProviderCredentials:
    """Create provider credentials."""
    return ProviderCredentials(
        crm_type=crm_type, api_key=SecretStr(API_KEY), crm_settings=crm_settings or {}
    )


def hubspot_payload(count: int) -> Dict[str, Any]:
    """A HubSpot contacts listing with ``count`` complete contacts."""
    return {
        "results": [
            {
                "id": str(1000 + i),
                "properties": {
                    "firstname": f"Jane{i}",
                    "lastname": "Doe",
                    "email": f"jane{i}@example.com",
                    "phone": f"+1555000{i:04d}",
                    "createdate": f"2024-03-{(i % 28) + 1:02d}T10:00:00.000Z",
                },
                "createdAt": "2024-01-01T00:00:00.000Z",
                "archived": False,
            }
            for i in range(count)
        ]
    }


def salesforce_payload(count: int) -> Dict[str, Any]:
    """A Salesforce SOQL query result with ``count`` leads."""
    return {
        "totalSize": count,
        "done": True,
        "records": [
            {
                "attributes": {"type": "Lead"},
                "Id": f"00Q{i:015d}",
                "FirstName": f"Lead{i}",
                "LastName": "Smith",
                "Email": f"lead{i}@example.com",
                "Phone": f"(555) 010-{i:04d}",
                "CreatedDate": "2024-02-01T08:00:00.000+0000",
            }
            for i in range(count)
        ],
    }


def pipedrive_payload(count: int) -> Dict[str, Any]:
    """A Pipedrive persons listing with ``count`` persons."""
    return {
        "success": True,
        "data": [
            {
                "id": 500 + i,
                "name": f"Person {i}",
                "primary_email": f"person{i}@example.com",
                "phone": [{"value": f"555-02{i:02d}", "primary": True}],
                "add_time": "2024-04-01 12:00:00",
            }
            for i in range(count)
        ],
    }


PAYLOAD_BUILDERS = {
    "hubspot": hubspot_payload,
    "salesforce": salesforce_payload,
    "pipedrive": pipedrive_payload,
}


class RecordsHandler(logging.Handler):
    """Logging handler keeping every formatted message."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


@pytest.fixture
def identity_service():
    """Identity service accepting VALID_TOKEN."""
    return FakeIdentityService()


@pytest.fixture
def profile_store():
    """Empty in-memory profile store."""
    return InMemoryProfileStore()


@pytest.fixture
def make_service(identity_service, profile_store):
    """Factory for a contacts service answering provider calls from a handler."""

    def _make(handler: Callable, **kwargs: Any) -> CrmContactsService:
        kwargs.setdefault("adapter_options", dict(FAST_RETRY_OPTIONS))
        return CrmContactsService(
            identity_service=identity_service,
            profile_store=profile_store,
            http_client_factory=client_factory(handler),
            **kwargs,
        )

    return _make


@pytest.fixture
def captured_logs():
    """Capture everything logged through the application logger."""
    handler = RecordsHandler()
    app_logger = logging.getLogger("estatecrm")
    previous_level = app_logger.level
    app_logger.addHandler(handler)
    app_logger.setLevel(logging.DEBUG)
    yield handler.messages
    app_logger.removeHandler(handler)
    app_logger.setLevel(previous_level)
