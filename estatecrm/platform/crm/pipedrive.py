"""Pipedrive CRM adapter.

Reads persons from the Pipedrive v1 API:
  GET https://{company_domain}.pipedrive.com/api/v1/persons
Pipedrive authenticates with an ``api_token`` query parameter instead of a header.
"""

from typing import Any, Dict, List

from estatecrm.core.config import settings
from estatecrm.core.exceptions import ProviderPayloadError
from estatecrm.platform.crm._base import BaseCRMAdapter
from estatecrm.platform.crm.normalizers import (
    as_mapping,
    as_text,
    build_contact,
    extract_records,
    first_text,
    join_name,
    primary_entry,
)
from estatecrm.platform.crm.registry import crm_adapter
from estatecrm.schemas.contact import Contact, CrmProvider


def normalize_company_domain(domain: str) -> str:
    """Reduce a pasted company URL (``https://acme.pipedrive.com/``) to ``acme``."""
    domain = domain.strip().lower()
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix) :]
    domain = domain.split("/", 1)[0]
    if domain.endswith(".pipedrive.com"):
        domain = domain[: -len(".pipedrive.com")]
    return domain


@crm_adapter(provider=CrmProvider.PIPEDRIVE)
class PipedriveAdapter(BaseCRMAdapter):
    """Pipedrive adapter.

    Settings:
        company_domain: The account's subdomain on pipedrive.com.
    """

    @property
    def company_domain(self) -> str:
        """The configured company subdomain, or the built-in placeholder."""
        return normalize_company_domain(
            self.credentials.setting("company_domain", settings.PIPEDRIVE_DEFAULT_COMPANY_DOMAIN)
        )

    def contacts_url(self) -> str:
        """Persons listing endpoint of the company."""
        return f"https://{self.company_domain}.pipedrive.com/api/v1/persons"

    def contacts_params(self) -> Dict[str, Any]:
        """One page of persons, newest first, with the token as a query parameter."""
        return {
            "limit": self.page_size,
            "sort": "add_time DESC",
            "api_token": self.credentials.api_key.get_secret_value(),
        }

    def extract_records(self, payload: Any) -> List[Any]:
        """Persons are listed under ``data``, which is null when there are none.

        Pipedrive can also answer 2xx with ``success: false``.
        """
        body = as_mapping(payload)
        if body.get("success") is False:
            reason = as_text(body.get("error")) or "unknown error"
            raise ProviderPayloadError(
                self.provider.value,
                f"Pipedrive API reported failure: {self._redact(reason)}",
            )
        return extract_records(payload, "data", self.provider)

    def normalize_record(self, record: Any, fetched_at: str) -> Contact:
        """Map a Pipedrive person to a canonical contact."""
        person = as_mapping(record)
        return build_contact(
            self.provider,
            contact_id=person.get("id"),
            name=first_text(person.get("name"))
            or join_name(person.get("first_name"), person.get("last_name")),
            email=first_text(person.get("primary_email"), primary_entry(person.get("email"))),
            phone=first_text(person.get("primary_phone"), primary_entry(person.get("phone"))),
            created_at=person.get("add_time"),
            fetched_at=fetched_at,
        )
