"""Configuration settings for the estatecrm backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prod).
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        SUPABASE_URL (str): Base URL of the Supabase project (auth + profiles).
        SUPABASE_SERVICE_ROLE_KEY (str): Service role key used for profile lookups.
        SUPABASE_TIMEOUT_SECONDS (float): Timeout for identity and profile calls.
        CRM_REQUEST_TIMEOUT_SECONDS (float): Timeout for every outbound CRM call.
        CRM_MAX_RETRIES (int): Retries after the first attempt for transient CRM failures.
        CRM_RETRY_BACKOFF_SECONDS (float): Exponential backoff multiplier between retries.
        CRM_RETRY_MAX_WAIT_SECONDS (float): Upper bound for a single backoff wait.
        CRM_PAGE_SIZE (int): Number of records requested from a CRM in one round trip.
        CRM_ERROR_BODY_MAX_CHARS (int): Provider error bodies are truncated to this length.
        HUBSPOT_API_BASE_URL (str): HubSpot REST API base URL.
        SALESFORCE_DEFAULT_INSTANCE_URL (str): Instance URL used when none is configured.
        SALESFORCE_API_VERSION (str): Salesforce REST API version used when none is configured.
        PIPEDRIVE_DEFAULT_COMPANY_DOMAIN (str): Company domain used when none is configured.
        DISCONNECT_POLL_INTERVAL_SECONDS (float): Client disconnect polling interval.
        ADDITIONAL_CORS_ORIGINS (Optional[list[str]]): Extra CORS origins separated by commas.
    """

    PROJECT_NAME: str = "estatecrm"
    ENVIRONMENT: str = "local"
    LOCAL_DEVELOPMENT: bool = False

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    # Supabase (identity service + profile store)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_TIMEOUT_SECONDS: float = 10.0

    # CRM adapters
    CRM_REQUEST_TIMEOUT_SECONDS: float = 10.0
    CRM_MAX_RETRIES: int = 2
    CRM_RETRY_BACKOFF_SECONDS: float = 0.5
    CRM_RETRY_MAX_WAIT_SECONDS: float = 4.0
    CRM_PAGE_SIZE: int = 100
    CRM_ERROR_BODY_MAX_CHARS: int = 500

    HUBSPOT_API_BASE_URL: str = "https://api.hubapi.com"
    SALESFORCE_DEFAULT_INSTANCE_URL: str = "https://your-instance.salesforce.com"
    SALESFORCE_API_VERSION: str = "58.0"
    PIPEDRIVE_DEFAULT_COMPANY_DOMAIN: str = "your-company"

    # How often a running contacts request checks whether its caller went away
    DISCONNECT_POLL_INTERVAL_SECONDS: float = 0.5

    ADDITIONAL_CORS_ORIGINS: Optional[str] = None  # Separated by commas or semicolons

    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: Optional[str]) -> str:
        """Upper-case the configured log level."""
        return (v or "INFO").upper()

    @field_validator("CRM_REQUEST_TIMEOUT_SECONDS", "SUPABASE_TIMEOUT_SECONDS")
    def validate_timeout(cls, v: float, info: ValidationInfo) -> float:
        """Outbound calls must always carry a positive timeout.

        Args:
            v: The configured timeout.
            info: Validation context, used for the field name.

        Raises:
            ValueError: If the timeout is zero or negative.
        """
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return v

    @field_validator("CRM_MAX_RETRIES", "CRM_PAGE_SIZE", "CRM_ERROR_BODY_MAX_CHARS")
    def validate_non_negative(cls, v: int, info: ValidationInfo) -> int:
        """Reject negative counts."""
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @property
    def cors_origins(self) -> list[str]:
        """Parse the additional CORS origins, supporting comma and semicolon separators.

        Returns:
            list[str]: The configured origins, empty if none.
        """
        if not self.ADDITIONAL_CORS_ORIGINS:
            return []
        raw = self.ADDITIONAL_CORS_ORIGINS.replace(";", ",")
        return [origin.strip() for origin in raw.split(",") if origin.strip()]


settings = Settings()
