# flake8: noqa: F401
"""Schemas for the application."""

from .contact import Contact, CrmProvider
from .crm_contacts import (
    ContactsRequest,
    ContactsResponse,
    ErrorResponse,
    Principal,
    ServiceResult,
)
from .crm_credentials import CrmProfile, ProviderCredentials
