"""Custom router that serves every path with and without a trailing slash."""

from typing import Any, Callable

from fastapi import APIRouter
from fastapi.types import DecoratedCallable


class TrailingSlashRouter(APIRouter):
    """Registers each endpoint for both ``/path`` and ``/path/``.

    Only the variant without the slash is included in the OpenAPI schema, so
    clients calling ``/crm/contacts/`` are served instead of redirected.
    """

    def api_route(
        self, path: str, *, include_in_schema: bool = True, **kwargs: Any
    ) -> Callable[[DecoratedCallable], DecoratedCallable]:
        """Register the endpoint under both path variants.

        Args:
            path (str): The path for the endpoint
            include_in_schema (bool): Whether to include the route in the OpenAPI schema
            **kwargs: Additional arguments for the parent api_route method
        """
        path = path.rstrip("/")
        register_canonical = super().api_route(
            path, include_in_schema=include_in_schema, **kwargs
        )
        register_slashed = super().api_route(path + "/", include_in_schema=False, **kwargs)

        def decorator(func: DecoratedCallable) -> DecoratedCallable:
            register_slashed(func)
            return register_canonical(func)

        return decorator
