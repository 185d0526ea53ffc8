"""Main module of the FastAPI application.

This module sets up the FastAPI application and the middleware to log incoming requests
and unhandled exceptions.
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from estatecrm.api.middleware import (
    DynamicCORSMiddleware,
    ExceptionLoggingMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    validation_exception_handler,
)
from estatecrm.api.router import TrailingSlashRouter
from estatecrm.api.v1.api import api_router
from estatecrm.core.config import settings

# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(api_router)

# Register middleware, innermost first. All of them are plain ASGI so that
# request.is_disconnected() sees the client's disconnect.
app.add_middleware(ExceptionLoggingMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIdMiddleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)

# Default CORS origins - the environment can extend this
CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:8080",
]

if settings.ENVIRONMENT == "local":
    CORS_ORIGINS.append("*")
CORS_ORIGINS.extend(settings.cors_origins)

app.add_middleware(DynamicCORSMiddleware, default_origins=CORS_ORIGINS)
