"""Registry of CRM adapters, keyed by provider.

The set of providers is closed (`CrmProvider`); `ensure_registry_complete`
verifies at import time that every provider has exactly one adapter.
"""

from typing import Callable, Dict, Type

from estatecrm.platform.crm._base import BaseCRMAdapter
from estatecrm.schemas.contact import CrmProvider

_ADAPTERS: Dict[CrmProvider, Type[BaseCRMAdapter]] = {}


def crm_adapter(provider: CrmProvider) -> Callable[[type], type]:
    """Class decorator registering a CRM adapter for a provider.

    Args:
        provider: The provider the adapter serves

    Example:
        @crm_adapter(provider=CrmProvider.HUBSPOT)
        class HubspotAdapter(BaseCRMAdapter):
            ...
    """

    def decorator(cls: type) -> type:
        if provider in _ADAPTERS and _ADAPTERS[provider] is not cls:
            raise ValueError(
                f"Adapter for {provider.value} already registered: {_ADAPTERS[provider].__name__}"
            )
        cls.provider = provider
        _ADAPTERS[provider] = cls
        return cls

    return decorator


def ensure_registry_complete() -> None:
    """Fail loudly if a provider has no adapter.

    Raises:
        RuntimeError: If any `CrmProvider` member is missing from the registry.
    """
    missing = [provider.value for provider in CrmProvider if provider not in _ADAPTERS]
    if missing:
        raise RuntimeError(f"No CRM adapter registered for: {', '.join(sorted(missing))}")


def get_adapter_class(provider: CrmProvider) -> Type[BaseCRMAdapter]:
    """Return the adapter class serving a provider."""
    return _ADAPTERS[provider]


def registered_adapters() -> Dict[CrmProvider, Type[BaseCRMAdapter]]:
    """Return a copy of the provider to adapter mapping."""
    return dict(_ADAPTERS)
