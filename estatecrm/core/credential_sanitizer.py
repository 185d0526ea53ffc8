"""Credential sanitization utilities for safe logging.

This module provides functions to log credential information and echo provider
error text without exposing the CRM api key.
"""

from typing import Any, Dict, Optional

from pydantic import SecretStr

REDACTED = "[REDACTED]"

_SENSITIVE_KEYWORDS = ("key", "token", "secret", "password", "credential")


def sanitize_credential_value(value: Any) -> str:
    """Sanitize a credential value for safe logging.

    Only the type and length survive, never any characters of the value.

    Args:
        value: The credential value to sanitize

    Returns:
        A sanitized string representation of the value
    """
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    if isinstance(value, str):
        return f"<redacted:{len(value)} chars>"
    if value is None:
        return "<redacted:null>"
    return f"<redacted {type(value).__name__}>"


def _is_sensitive_field(field_name: str) -> bool:
    lowered = field_name.lower()
    return any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS)


def sanitize_settings_dict(crm_settings: Dict[str, Any]) -> Dict[str, Any]:
    """Redact the sensitive-looking entries of a per-provider settings map.

    Args:
        crm_settings: The opaque crm_settings map from a profile

    Returns:
        A copy where values of secret-looking keys are sanitized
    """
    return {
        key: sanitize_credential_value(value) if _is_sensitive_field(key) else value
        for key, value in crm_settings.items()
    }


def redact_secret(text: str, secret: Optional[SecretStr]) -> str:
    """Remove every occurrence of a secret from free text.

    Provider error bodies and transport error messages can echo request URLs,
    which for query-string authentication contain the api key.

    Args:
        text: Untrusted text that may contain the secret
        secret: The secret to scrub

    Returns:
        The text with the secret replaced by a marker
    """
    if not text or secret is None:
        return text
    raw = secret.get_secret_value()
    if not raw:
        return text
    return text.replace(raw, REDACTED)


def truncate(text: str, max_chars: int) -> str:
    """Cut text to at most max_chars characters, marking the cut."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}... [truncated]"
