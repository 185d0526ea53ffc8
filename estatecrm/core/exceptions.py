"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class EstateCrmException(Exception):
    """Base exception for estatecrm services."""

    def __init__(self, message: Optional[str] = "Internal error"):
        """Create a new EstateCrmException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class AuthenticationError(EstateCrmException):
    """Exception raised when the caller's bearer token is missing or invalid."""

    def __init__(self, message: Optional[str] = "Invalid authentication"):
        """Create a new AuthenticationError instance."""
        super().__init__(message)


class ConfigurationMissingError(EstateCrmException):
    """Exception raised when a principal has no usable CRM configuration."""

    def __init__(
        self,
        message: Optional[str] = (
            "CRM not configured. Please set up your CRM integration in Profile settings."
        ),
    ):
        """Create a new ConfigurationMissingError instance."""
        super().__init__(message)


class UnsupportedProviderError(EstateCrmException):
    """Exception raised when a stored CRM type has no adapter."""

    def __init__(self, crm_type: Optional[str]):
        """Create a new UnsupportedProviderError instance.

        Args:
        ----
            crm_type (str): The tag found in the principal's profile.

        """
        self.crm_type = crm_type
        super().__init__(f"Unsupported CRM type: {crm_type}")


class ExternalServiceError(EstateCrmException):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        super().__init__(message)

    def __str__(self) -> str:
        """Prefix the message with the service name."""
        return f"{self.service_name}: {self.message}"


class IdentityServiceError(ExternalServiceError):
    """Raised when the identity service cannot be reached or answers unexpectedly."""

    def __init__(self, message: Optional[str] = "Identity service failed"):
        """Create a new IdentityServiceError instance."""
        super().__init__("identity", message)


class ProfileStoreError(ExternalServiceError):
    """Raised when the profile store cannot be read."""

    def __init__(self, message: Optional[str] = "Failed to fetch profile"):
        """Create a new ProfileStoreError instance."""
        super().__init__("profiles", message)


class CRMAdapterError(EstateCrmException):
    """Base class for failures of a single CRM provider call."""

    def __init__(self, provider: str, message: str):
        """Create a new CRMAdapterError instance.

        Args:
        ----
            provider (str): The provider label (hubspot, salesforce, pipedrive).
            message (str): The caller-facing error message, already free of secrets.

        """
        self.provider = provider
        super().__init__(message)


class NetworkError(CRMAdapterError):
    """The provider call never completed (connection failure or timeout)."""

    pass


class ProviderHttpError(CRMAdapterError):
    """The provider answered with a non-2xx status."""

    def __init__(self, provider: str, display_name: str, status_code: int, body: str):
        """Create a new ProviderHttpError instance.

        Args:
        ----
            provider (str): The provider label.
            display_name (str): Human readable provider name used in the message.
            status_code (int): The HTTP status returned by the provider.
            body (str): The (truncated, redacted) response body text.

        """
        self.status_code = status_code
        self.body = body
        super().__init__(provider, f"{display_name} API error: {status_code} - {body}")

    @property
    def is_transient(self) -> bool:
        """Whether the failure is a server-side error worth retrying."""
        return self.status_code >= 500


class ProviderPayloadError(CRMAdapterError):
    """The provider answered 2xx but no contacts can be extracted from the body."""

    pass


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
