"""Unit tests for the CRM contacts service."""

import asyncio
from unittest.mock import MagicMock

import httpx
import pytest

from estatecrm.core.crm_contacts_service import FETCH_FAILED, extract_bearer_token
from estatecrm.core.exceptions import IdentityServiceError, ProfileStoreError
from estatecrm.platform.crm import get_adapter_class
from estatecrm.schemas import ContactsResponse, CrmProvider, ErrorResponse, ServiceResult
from tests.fixtures.common import (
    API_KEY,
    PAYLOAD_BUILDERS,
    PRINCIPAL_ID,
    VALID_TOKEN,
    QueuedHandler,
    hubspot_payload,
    make_profile,
    salesforce_payload,
)

AUTH = f"Bearer {VALID_TOKEN}"
NOT_CONFIGURED = "CRM not configured. Please set up your CRM integration in Profile settings."


def unexpected_call(request):
    raise AssertionError(f"unexpected provider call to {request.url}")


@pytest.mark.parametrize(
    "header, token",
    [
        (None, None),
        ("", None),
        ("Bearer ", None),
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("  Bearer   abc  ", "abc"),
        ("abc", "abc"),
    ],
)
def test_extract_bearer_token(header, token):
    """Test reading the token out of an Authorization header."""
    assert extract_bearer_token(header) == token


class TestProviderDispatch:
    """Tests for routing a request to the principal's CRM."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", list(CrmProvider))
    async def test_dispatches_to_configured_provider(self, provider, profile_store, make_service):
        """Test that exactly the configured provider's adapter is used."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile(provider.value.upper())
        handler = QueuedHandler(httpx.Response(200, json=PAYLOAD_BUILDERS[provider.value](2)))
        lookup = MagicMock(side_effect=get_adapter_class)
        service = make_service(handler, adapter_lookup=lookup)

        result = await service.handle(AUTH)

        assert result.status_code == 200
        lookup.assert_called_once_with(provider)
        assert len(handler.requests) == 1
        body = result.content()
        assert body["success"] is True
        assert body["crm_type"] == provider.value
        assert body["total_count"] == 2
        assert all(contact["source"] == provider.value for contact in body["contacts"])

    @pytest.mark.asyncio
    async def test_unsupported_provider(self, profile_store, make_service, captured_logs):
        """Test that an unknown CRM type fails without any provider call."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("zoho")
        lookup = MagicMock(side_effect=get_adapter_class)
        service = make_service(unexpected_call, adapter_lookup=lookup)

        result = await service.handle(AUTH)

        assert result.status_code == 500
        assert result.content() == {
            "error": FETCH_FAILED,
            "details": "Unsupported CRM type: zoho",
            "contacts": [],
        }
        lookup.assert_not_called()
        assert any("Unsupported CRM type: zoho" in message for message in captured_logs)


class TestScenarios:
    """End-to-end scenarios through the service."""

    @pytest.mark.asyncio
    async def test_hubspot_first_page(self, profile_store, make_service):
        """Test a two-contact HubSpot account read with limit 1."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("hubspot")
        handler = QueuedHandler(httpx.Response(200, json=hubspot_payload(2)))

        result = await make_service(handler).handle(AUTH, limit=1, offset=0)

        body = result.content()
        assert result.status_code == 200
        assert body["crm_type"] == "hubspot"
        assert [c["id"] for c in body["contacts"]] == ["1000"]
        assert body["contacts"][0]["name"] == "Jane0 Doe"
        assert body["total_count"] == 2
        assert body["has_more"] is True

    @pytest.mark.asyncio
    async def test_salesforce_without_leads(self, profile_store, make_service):
        """Test that an org with no open leads is an empty success."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("salesforce")
        handler = QueuedHandler(httpx.Response(200, json=salesforce_payload(0)))

        result = await make_service(handler).handle(AUTH)

        assert result.status_code == 200
        assert result.content() == {
            "success": True,
            "crm_type": "salesforce",
            "contacts": [],
            "total_count": 0,
            "has_more": False,
        }

    @pytest.mark.asyncio
    async def test_pipedrive_forbidden(self, profile_store, make_service):
        """Test that a Pipedrive 403 answers 500 with an empty contact list."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile(
            "pipedrive", crm_settings={"company_domain": "acme"}
        )
        handler = QueuedHandler(
            httpx.Response(403, json={"success": False, "error": "Forbidden"})
        )

        result = await make_service(handler).handle(AUTH)

        assert result.status_code == 500
        body = result.content()
        assert body["error"]
        assert body["details"].startswith("Pipedrive API error: 403")
        assert body["contacts"] == []
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_paginated_hubspot_fetch(self, profile_store, make_service):
        """Test a 250-contact HubSpot account paginated with limit 50 and offset 100."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("hubspot")
        payload = hubspot_payload(250)
        handler = QueuedHandler(httpx.Response(200, json=payload))
        service = make_service(handler)

        result = await service.handle(AUTH, limit=50, offset=100)

        assert result.status_code == 200
        body = result.content()
        assert body["total_count"] == 250
        assert body["has_more"] is True
        assert [c["id"] for c in body["contacts"]] == [
            record["id"] for record in payload["results"][100:150]
        ]

    @pytest.mark.asyncio
    async def test_missing_configuration(self, profile_store, make_service):
        """Test that a profile without a CRM type answers 400 without any provider call."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile(crm_type=None)
        lookup = MagicMock(side_effect=get_adapter_class)
        service = make_service(unexpected_call, adapter_lookup=lookup)

        result = await service.handle(AUTH)

        assert result.status_code == 400
        assert result.content() == {"error": NOT_CONFIGURED, "contacts": []}
        lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_profile(self, make_service):
        """Test that a principal without a profile row answers 400."""
        result = await make_service(unexpected_call).handle(AUTH)

        assert result.status_code == 400
        assert result.content()["error"] == NOT_CONFIGURED

    @pytest.mark.asyncio
    async def test_provider_rejects_credentials(self, profile_store, make_service, captured_logs):
        """Test that a provider 401 becomes a 500 envelope without the api key."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile(
            "salesforce", crm_settings={"instance_url": "https://acme.my.salesforce.com"}
        )
        handler = QueuedHandler(
            httpx.Response(401, text='[{"errorCode":"INVALID_SESSION_ID"}]')
        )
        service = make_service(handler)

        result = await service.handle(AUTH)

        assert result.status_code == 500
        body = result.content()
        assert body["error"] == FETCH_FAILED
        assert body["details"].startswith("Salesforce API error: 401 - ")
        assert "INVALID_SESSION_ID" in body["details"]
        assert body["contacts"] == []
        assert len(handler.requests) == 1
        assert API_KEY not in str(body)
        assert all(API_KEY not in message for message in captured_logs)

    @pytest.mark.asyncio
    async def test_empty_pipedrive_account(self, profile_store, make_service):
        """Test that an account with no persons yields an empty success page."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile(
            "pipedrive", crm_settings={"company_domain": "acme"}
        )
        handler = QueuedHandler(httpx.Response(200, json={"success": True, "data": None}))
        service = make_service(handler)

        result = await service.handle(AUTH)

        assert result.status_code == 200
        assert result.content() == {
            "success": True,
            "crm_type": "pipedrive",
            "contacts": [],
            "total_count": 0,
            "has_more": False,
        }


class TestAuthentication:
    """Tests for rejecting unauthenticated callers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("authorization", [None, "", "Bearer "])
    async def test_missing_credentials(self, authorization, identity_service, make_service):
        """Test that a request without a token answers 401 without calling the identity service."""
        result = await make_service(unexpected_call).handle(authorization)

        assert result.status_code == 401
        assert result.content() == {"error": "Authentication required", "contacts": []}
        assert identity_service.calls == []

    @pytest.mark.asyncio
    async def test_invalid_token(self, profile_store, make_service):
        """Test that an invalid token answers 401 before the profile is read."""
        result = await make_service(unexpected_call).handle("Bearer forged")

        assert result.status_code == 401
        assert result.content() == {"error": "Invalid authentication", "contacts": []}
        assert profile_store.calls == []

    @pytest.mark.asyncio
    async def test_identity_service_failure(self, identity_service, make_service):
        """Test that an unavailable identity service answers 500."""

        async def fail(token):
            raise IdentityServiceError("Identity service answered 503")

        identity_service.authenticate = fail
        result = await make_service(unexpected_call).handle(AUTH)

        assert result.status_code == 500
        assert result.content()["details"] == "Identity service answered 503"


class TestFailures:
    """Tests for failures turned into envelopes."""

    @pytest.mark.asyncio
    async def test_profile_store_failure(self, profile_store, make_service):
        """Test that a profile store failure answers 500, not 400."""

        async def fail(principal_id):
            raise ProfileStoreError("Failed to fetch profile: HTTP 503")

        profile_store.get_crm_profile = fail
        result = await make_service(unexpected_call).handle(AUTH)

        assert result.status_code == 500
        assert result.content()["details"] == "Failed to fetch profile: HTTP 503"

    @pytest.mark.asyncio
    async def test_network_failure(self, profile_store, make_service):
        """Test that an unreachable provider answers 500 after retries."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("hubspot")
        handler = QueuedHandler(httpx.ConnectError("connection refused"))

        result = await make_service(handler).handle(AUTH)

        assert result.status_code == 500
        assert result.content()["details"] == (
            "HubSpot request failed: ConnectError: connection refused"
        )
        assert len(handler.requests) == 3

    @pytest.mark.asyncio
    async def test_unexpected_adapter_error(self, profile_store, make_service):
        """Test that an unexpected exception still produces a failure envelope."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("hubspot")
        broken_adapter = MagicMock()
        broken_adapter.create.side_effect = RuntimeError("boom")
        service = make_service(unexpected_call, adapter_lookup=lambda provider: broken_adapter)

        result = await service.handle(AUTH)

        assert result.status_code == 500
        assert result.content() == {
            "error": FETCH_FAILED,
            "details": "Unexpected internal error",
            "contacts": [],
        }

    @pytest.mark.asyncio
    async def test_unexpected_error_before_fetch(self, identity_service, make_service):
        """Test that an exception outside the provider call is also enveloped."""

        async def explode(token):
            raise KeyError("id")

        identity_service.authenticate = explode
        result = await make_service(unexpected_call).handle(AUTH)

        assert result.status_code == 500
        assert result.content()["error"] == FETCH_FAILED

    @pytest.mark.asyncio
    async def test_secret_never_in_logs_on_success(
        self, profile_store, make_service, captured_logs
    ):
        """Test that a successful Pipedrive fetch logs nothing containing the token."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile(
            "pipedrive", crm_settings={"company_domain": "acme"}
        )
        handler = QueuedHandler(httpx.Response(200, json=PAYLOAD_BUILDERS["pipedrive"](1)))

        result = await make_service(handler).handle(AUTH, request_id="req-1")

        assert result.status_code == 200
        assert captured_logs
        assert all(API_KEY not in message for message in captured_logs)


class TestCancellation:
    """Tests for abandoning a request while the provider call is in flight."""

    @pytest.mark.asyncio
    async def test_cancel_aborts_provider_call(self, profile_store, make_service):
        """Test that cancelling the handling task cancels the outbound call."""
        profile_store.profiles[PRINCIPAL_ID] = make_profile("hubspot")
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def slow_handler(request):
            started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return httpx.Response(200, json={"results": []})

        task = asyncio.ensure_future(make_service(slow_handler).handle(AUTH))
        await asyncio.wait_for(started.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert cancelled.is_set()


class TestServiceResult:
    """Tests for the envelope carried out of the service."""

    def test_failure_content_omits_null_details(self):
        """Test that a failure without details serializes without the key."""
        result = ServiceResult(status_code=400, body=ErrorResponse(error=NOT_CONFIGURED))

        assert result.content() == {"error": NOT_CONFIGURED, "contacts": []}

    def test_success_is_told_apart_by_body_type(self):
        """Test that callers distinguish outcomes by status and body, not a flag."""
        result = ServiceResult(
            status_code=200,
            body=ContactsResponse(crm_type="hubspot", contacts=[], total_count=0, has_more=False),
        )

        assert isinstance(result.body, ContactsResponse)
        assert result.content()["success"] is True
        assert not hasattr(result, "is_success")
