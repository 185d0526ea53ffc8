"""CRM adapters, one per supported provider."""

from estatecrm.platform.crm._base import BaseCRMAdapter
from estatecrm.platform.crm.hubspot import HubspotAdapter
from estatecrm.platform.crm.pipedrive import PipedriveAdapter
from estatecrm.platform.crm.registry import (
    ensure_registry_complete,
    get_adapter_class,
    registered_adapters,
)
from estatecrm.platform.crm.salesforce import SalesforceAdapter

ensure_registry_complete()

__all__ = [
    "BaseCRMAdapter",
    "HubspotAdapter",
    "PipedriveAdapter",
    "SalesforceAdapter",
    "get_adapter_class",
    "registered_adapters",
]
