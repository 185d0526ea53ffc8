"""HubSpot CRM adapter.

Reads contacts from the HubSpot CRM v3 objects API:
  GET https://api.hubapi.com/crm/v3/objects/contacts
authenticated with a private-app bearer token.
"""

from typing import Any, Dict, List

from estatecrm.core.config import settings
from estatecrm.platform.crm._base import BaseCRMAdapter
from estatecrm.platform.crm.normalizers import (
    as_mapping,
    build_contact,
    extract_records,
    first_text,
    join_name,
)
from estatecrm.platform.crm.registry import crm_adapter
from estatecrm.schemas.contact import Contact, CrmProvider

CONTACT_PROPERTIES = ["firstname", "lastname", "email", "phone", "createdate", "hs_lead_status"]


@crm_adapter(provider=CrmProvider.HUBSPOT)
class HubspotAdapter(BaseCRMAdapter):
    """HubSpot adapter.

    Contact fields live under each result's ``properties`` map; the creation
    date is the ``createdate`` property, falling back to the object's
    top-level ``createdAt``.
    """

    def contacts_url(self) -> str:
        """HubSpot contacts listing endpoint."""
        return f"{settings.HUBSPOT_API_BASE_URL.rstrip('/')}/crm/v3/objects/contacts"

    def contacts_params(self) -> Dict[str, Any]:
        """Request one page of non-archived contacts with the mapped properties."""
        return {
            "limit": self.page_size,
            "properties": ",".join(CONTACT_PROPERTIES),
            "archived": "false",
        }

    def auth_headers(self) -> Dict[str, str]:
        """Bearer token header."""
        return {"Authorization": f"Bearer {self.credentials.api_key.get_secret_value()}"}

    def extract_records(self, payload: Any) -> List[Any]:
        """Contacts are listed under ``results``."""
        return extract_records(payload, "results", self.provider)

    def normalize_record(self, record: Any, fetched_at: str) -> Contact:
        """Map a HubSpot contact object to a canonical contact."""
        contact = as_mapping(record)
        properties = as_mapping(contact.get("properties"))
        return build_contact(
            self.provider,
            contact_id=contact.get("id"),
            name=join_name(properties.get("firstname"), properties.get("lastname")),
            email=properties.get("email"),
            phone=properties.get("phone"),
            created_at=first_text(properties.get("createdate"), contact.get("createdAt")),
            fetched_at=fetched_at,
        )
