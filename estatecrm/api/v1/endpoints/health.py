"""Health check endpoints."""

from estatecrm.api.router import TrailingSlashRouter

router = TrailingSlashRouter()


@router.get("")
async def health_check() -> dict[str, str]:
    """Check if the API is healthy."""
    return {"status": "healthy"}
