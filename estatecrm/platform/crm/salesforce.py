"""Salesforce CRM adapter.

Reads open (unconverted) Leads through the Salesforce REST query endpoint with
a SOQL statement, newest first. The org is addressed by the ``instance_url``
stored in the profile's CRM settings.
"""

from typing import Any, Dict, List

from estatecrm.core.config import settings
from estatecrm.platform.crm._base import BaseCRMAdapter
from estatecrm.platform.crm.normalizers import (
    as_mapping,
    build_contact,
    extract_records,
    join_name,
)
from estatecrm.platform.crm.registry import crm_adapter
from estatecrm.schemas.contact import Contact, CrmProvider

LEAD_QUERY = (
    "SELECT Id, FirstName, LastName, Email, Phone, CreatedDate FROM Lead "
    "WHERE IsConverted = false ORDER BY CreatedDate DESC LIMIT {limit}"
)


def normalize_instance_url(url: str) -> str:
    """Ensure an instance URL carries a scheme and no trailing slash.

    Users paste both ``mycompany.my.salesforce.com`` and
    ``https://mycompany.my.salesforce.com/``.
    """
    url = url.strip().rstrip("/")
    if not url.startswith(("https://", "http://")):
        url = f"https://{url}"
    return url


@crm_adapter(provider=CrmProvider.SALESFORCE)
class SalesforceAdapter(BaseCRMAdapter):
    """Salesforce adapter.

    Settings:
        instance_url: The org's instance URL.
        api_version: REST API version, e.g. ``58.0``.
    """

    @property
    def instance_url(self) -> str:
        """The configured instance URL, or the built-in placeholder."""
        return normalize_instance_url(
            self.credentials.setting("instance_url", settings.SALESFORCE_DEFAULT_INSTANCE_URL)
        )

    @property
    def api_version(self) -> str:
        """The configured REST API version without a leading ``v``."""
        version = self.credentials.setting("api_version", settings.SALESFORCE_API_VERSION)
        return version.lstrip("vV")

    def contacts_url(self) -> str:
        """SOQL query endpoint of the org."""
        return f"{self.instance_url}/services/data/v{self.api_version}/query/"

    def contacts_params(self) -> Dict[str, Any]:
        """The lead query, capped at one page."""
        return {"q": LEAD_QUERY.format(limit=self.page_size)}

    def auth_headers(self) -> Dict[str, str]:
        """Bearer token header."""
        return {"Authorization": f"Bearer {self.credentials.api_key.get_secret_value()}"}

    def extract_records(self, payload: Any) -> List[Any]:
        """Query results are listed under ``records``."""
        return extract_records(payload, "records", self.provider)

    def normalize_record(self, record: Any, fetched_at: str) -> Contact:
        """Map a Lead record to a canonical contact."""
        lead = as_mapping(record)
        return build_contact(
            self.provider,
            contact_id=lead.get("Id"),
            name=join_name(lead.get("FirstName"), lead.get("LastName")),
            email=lead.get("Email"),
            phone=lead.get("Phone"),
            created_at=lead.get("CreatedDate"),
            fetched_at=fetched_at,
        )
