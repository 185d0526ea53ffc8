"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the
exception handlers that keep every error in the contacts failure envelope.

The middleware are plain ASGI callables that hand ``receive`` to the wrapped
app unchanged: the contacts endpoint polls ``request.is_disconnected()`` and
must see the client's ``http.disconnect`` message to cancel its CRM call.
"""

import time
import traceback
import uuid
from typing import List, Union

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from estatecrm.core.config import settings
from estatecrm.core.exceptions import unpack_validation_error
from estatecrm.core.logging import logger
from estatecrm.schemas import ErrorResponse


class RequestIdMiddleware:
    """Generate a request ID for tracing and return it in ``X-Request-ID``.

    The ID is stored in the request state, where ``get_context`` picks it up.
    """

    def __init__(self, app: ASGIApp):
        """Wrap the next ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Assign the ID and add the response header."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["X-Request-ID"] = request_id
            await send(message)

        await self.app(scope, receive, send_with_request_id)


class RequestLoggingMiddleware:
    """Log every request with its duration and status."""

    def __init__(self, app: ASGIApp):
        """Wrap the next ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Time the request and record the response status."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        status_code = 500

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            duration = time.time() - start_time
            logger.info(
                f"Handled request {scope['method']} {scope['path']} in {duration:.2f} seconds. "
                f"Response code: {status_code}"
            )


class ExceptionLoggingMiddleware:
    """Log unhandled exceptions and answer with a failure envelope.

    If the response has already started, the exception is logged and re-raised
    since no envelope can be sent anymore.
    """

    def __init__(self, app: ASGIApp):
        """Wrap the next ASGI app."""
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the app, turning escaped exceptions into a 500 envelope."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking_start(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_tracking_start)
        except Exception as exc:
            logger.error(
                f"Unhandled exception: {exc.__class__.__name__}\n{traceback.format_exc()}"
            )
            if response_started:
                raise

            content = ErrorResponse(error="Internal Server Error").model_dump(
                mode="json", exclude_none=True
            )
            if settings.DEBUG:
                content["details"] = f"{exc.__class__.__name__}: {exc}"

            response = JSONResponse(status_code=500, content=content)
            await response(scope, receive, send)


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Exception handler for request data that does not pass schema validation.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (Union[RequestValidationError, ValidationError]): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 failure envelope whose details name each invalid field, e.g.
            ``{"error": "Invalid request", "details": "limit: Input should be ...",
            "contacts": []}``

    """
    errors = unpack_validation_error(exc)["errors"]
    details = "; ".join(
        f"{field}: {message}" for error in errors for field, message in error.items()
    )
    content = ErrorResponse(error="Invalid request", details=details).model_dump(
        mode="json", exclude_none=True
    )
    return JSONResponse(status_code=422, content=content)


class DynamicCORSMiddleware:
    """Middleware answering CORS preflights and decorating responses for allowed origins.

    The browser dashboard calls the contacts endpoint with an ``Authorization``
    header, so preflights must allow it. A ``*`` entry allows every origin.
    """

    ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"

    def __init__(self, app: ASGIApp, default_origins: List[str]):
        """Initialize the middleware.

        Args:
            app: The next ASGI app
            default_origins: CORS origins to allow
        """
        self.app = app
        self.default_origins = default_origins

    def _is_allowed(self, origin: str) -> bool:
        return "*" in self.default_origins or origin in self.default_origins

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Answer preflights and add CORS headers to responses for allowed origins."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if not origin:
            await self.app(scope, receive, send)
            return

        if scope["method"] == "OPTIONS":
            if not self._is_allowed(origin):
                logger.debug(f"Rejected OPTIONS preflight for {scope['path']} from {origin}")
                response = Response(status_code=403)
            else:
                response = Response()
                response.headers["Access-Control-Allow-Origin"] = origin
                response.headers["Access-Control-Allow-Methods"] = "POST,OPTIONS"
                response.headers["Access-Control-Allow-Headers"] = self.ALLOWED_HEADERS
            await response(scope, receive, send)
            return

        if not self._is_allowed(origin):
            await self.app(scope, receive, send)
            return

        async def send_with_origin(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["Access-Control-Allow-Origin"] = origin
            await send(message)

        await self.app(scope, receive, send_with_origin)
