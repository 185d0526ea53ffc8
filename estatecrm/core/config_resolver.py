"""Resolution of a principal's CRM configuration."""

from estatecrm.core.credential_sanitizer import sanitize_credential_value, sanitize_settings_dict
from estatecrm.core.exceptions import ConfigurationMissingError
from estatecrm.core.logging import ContextualLogger, logger
from estatecrm.core.profile_store import ProfileStore
from estatecrm.schemas import ProviderCredentials


class ConfigurationResolver:
    """Turns a principal id into provider credentials via the profile store.

    Resolution fails before any CRM call is attempted when the CRM type or the
    api key is missing.
    """

    def __init__(self, profile_store: ProfileStore):
        """Initialize the resolver with its profile store."""
        self.profile_store = profile_store

    async def resolve(
        self, principal_id: str, log: ContextualLogger = logger
    ) -> ProviderCredentials:
        """Resolve the principal's CRM selection and credentials.

        Args:
            principal_id: The authenticated principal
            log: Contextual logger of the current request

        Returns:
            The principal's provider credentials

        Raises:
            ConfigurationMissingError: If no CRM type or api key is configured
            ProfileStoreError: If the profile store cannot be read
        """
        profile = await self.profile_store.get_crm_profile(principal_id)
        if profile is None:
            log.info("No profile found, CRM not configured")
            raise ConfigurationMissingError()

        crm_type = (profile.crm_type or "").strip()
        api_key = profile.crm_api_key
        if not crm_type or api_key is None or not api_key.get_secret_value().strip():
            log.info(
                f"CRM not configured: crm_type={crm_type or '<missing>'}, "
                f"api_key={sanitize_credential_value(api_key)}"
            )
            raise ConfigurationMissingError()

        credentials = ProviderCredentials(
            crm_type=crm_type,
            api_key=api_key,
            crm_settings=profile.crm_settings,
        )
        log.debug(
            f"Resolved CRM configuration: crm_type={crm_type}, "
            f"api_key={sanitize_credential_value(api_key)}, "
            f"settings={sanitize_settings_dict(credentials.crm_settings)}"
        )
        return credentials
