"""Per-request API context.

Bundles the request id and a logger pre-configured with it into one
injectable dependency.
"""

from pydantic import BaseModel, ConfigDict

from estatecrm.core.logging import ContextualLogger


class ApiContext(BaseModel):
    """Context of one HTTP API request."""

    model_config = ConfigDict(arbitrary_types_allowed=True)  # For ContextualLogger

    request_id: str

    # Contextual logger with the request dimensions pre-configured
    logger: ContextualLogger
