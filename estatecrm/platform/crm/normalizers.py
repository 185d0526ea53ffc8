"""Field mapping helpers shared by the CRM adapters.

Every helper defaults explicitly, so a partial or malformed record turns into a
contact with empty fields instead of a missing one.
"""

from typing import Any, Dict, List, Optional

from estatecrm.core.exceptions import ProviderPayloadError
from estatecrm.schemas.contact import Contact, CrmProvider


def as_text(value: Any) -> str:
    """Coerce a raw payload value to a string, empty for missing or structured values."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def as_mapping(value: Any) -> Dict[str, Any]:
    """Return the value if it is a JSON object, else an empty dict."""
    if isinstance(value, dict):
        return value
    return {}


def join_name(given: Any, family: Any) -> str:
    """Concatenate given and family name and trim the result."""
    return f"{as_text(given)} {as_text(family)}".strip()


def first_text(*values: Any) -> str:
    """Return the first value that normalizes to a non-empty string."""
    for value in values:
        text = as_text(value)
        if text:
            return text
    return ""


def primary_entry(value: Any) -> str:
    """Pick the primary value out of a Pipedrive-style multi-value field.

    Such fields look like ``[{"value": "a@b.c", "primary": true}, ...]``. The
    primary entry wins, otherwise the first entry with a value.
    """
    if not isinstance(value, list):
        return as_text(value)
    entries = [as_mapping(entry) for entry in value]
    for entry in entries:
        if entry.get("primary") and as_text(entry.get("value")):
            return as_text(entry.get("value"))
    return first_text(*(entry.get("value") for entry in entries))


def extract_records(
    payload: Any, key: str, provider: CrmProvider
) -> List[Any]:
    """Return the list of raw records stored under ``key`` of a provider response.

    A missing or null container means the provider has no records.

    Raises:
        ProviderPayloadError: If the response is not an object or the container
            is not a list.
    """
    if not isinstance(payload, dict):
        raise ProviderPayloadError(
            provider.value,
            f"{provider.display_name} API returned an unexpected response: expected an object",
        )
    records = payload.get(key)
    if records is None:
        return []
    if not isinstance(records, list):
        raise ProviderPayloadError(
            provider.value,
            f"{provider.display_name} API returned an unexpected response: "
            f"'{key}' is {type(records).__name__}, expected a list",
        )
    return records


def build_contact(
    provider: CrmProvider,
    *,
    contact_id: Any,
    name: str,
    email: Any,
    phone: Any,
    created_at: Optional[Any],
    fetched_at: str,
) -> Contact:
    """Assemble a canonical contact, applying the fetch-time fallback for created_at."""
    return Contact(
        id=as_text(contact_id),
        name=name.strip(),
        email=as_text(email),
        phone=as_text(phone),
        source=provider,
        created_at=as_text(created_at) or fetched_at,
    )
