"""API routes for the FastAPI application."""

from estatecrm.api.router import TrailingSlashRouter
from estatecrm.api.v1.endpoints import crm_contacts, health

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(crm_contacts.router, prefix="/crm", tags=["crm"])
