"""Contact schemas.

The canonical contact shape every CRM adapter produces, and the closed set of
supported CRM providers.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from estatecrm.core.exceptions import UnsupportedProviderError


class CrmProvider(str, Enum):
    """Supported CRM providers."""

    HUBSPOT = "hubspot"
    SALESFORCE = "salesforce"
    PIPEDRIVE = "pipedrive"

    @property
    def display_name(self) -> str:
        """Human readable provider name, used in error messages."""
        return {
            CrmProvider.HUBSPOT: "HubSpot",
            CrmProvider.SALESFORCE: "Salesforce",
            CrmProvider.PIPEDRIVE: "Pipedrive",
        }[self]

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "CrmProvider":
        """Parse a stored crm_type tag, ignoring case and surrounding whitespace.

        Raises:
            UnsupportedProviderError: If the tag names no supported provider.
        """
        normalized = (tag or "").strip().lower()
        for provider in cls:
            if provider.value == normalized:
                return provider
        raise UnsupportedProviderError(tag)


class Contact(BaseModel):
    """Canonical, provider-agnostic contact record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider-scoped identifier, unique within one provider.")
    name: str = Field("", description="Trimmed given + family name, empty if unknown.")
    email: str = Field("", description="Email address, empty if unknown.")
    phone: str = Field("", description="Phone number, empty if unknown.")
    source: CrmProvider = Field(..., description="The CRM this contact was read from.")
    created_at: str = Field(
        ...,
        description=(
            "Creation timestamp reported by the provider, or the fetch time when the "
            "provider omits it."
        ),
    )
