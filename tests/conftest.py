"""Common test fixtures and configuration for pytest."""

# Import all fixtures so they are automatically available for all tests
from tests.fixtures.common import (  # noqa
    captured_logs,
    identity_service,
    make_service,
    profile_store,
)
