"""CRM credential schemas.

`CrmProfile` is the raw row read from the profile store; `ProviderCredentials`
is the validated selection a CRM adapter is built from.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator


class CrmProfile(BaseModel):
    """CRM columns of a user profile, as stored. Every field may be missing."""

    crm_type: Optional[str] = None
    crm_api_key: Optional[SecretStr] = None
    crm_settings: Optional[Dict[str, Any]] = None


class ProviderCredentials(BaseModel):
    """A principal's CRM selection and credentials for a single request."""

    crm_type: str = Field(..., description="The stored CRM tag, compared case-insensitively.")
    api_key: SecretStr = Field(..., description="Opaque provider secret, transport-only.")
    crm_settings: Dict[str, Any] = Field(
        default_factory=dict, description="Opaque per-provider configuration."
    )

    @field_validator("crm_settings", mode="before")
    def default_settings(cls, v: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Treat a null or non-object settings value as empty."""
        if not isinstance(v, dict):
            return {}
        return v

    def setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Read a string setting, falling back to the default when missing or blank."""
        value = self.crm_settings.get(key)
        if value is None:
            return default
        value = str(value).strip()
        return value or default
