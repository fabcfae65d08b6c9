"""API key authentication middleware."""

import secrets
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

# Probes and the public catalog search stay reachable without a key
PUBLIC_PATHS = frozenset(
    {
        "/api/v1/health/live",
        "/api/v1/health/ready",
        "/api/v1/search/public",
    }
)


class APIKeyMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the X-API-Key header on protected endpoints."""

    def __init__(self, app: Callable[..., Awaitable[Response]], api_key: str) -> None:
        """Initialize middleware with API key.

        Args:
            app: ASGI application.
            api_key: Expected API key value.
        """
        super().__init__(app)  # type: ignore[arg-type]
        self._api_key = api_key

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        provided_key = request.headers.get("X-API-Key", "")
        if not provided_key or not secrets.compare_digest(provided_key, self._api_key):
            logger.warning(
                "api_key_rejected",
                path=request.url.path,
                reason="missing" if not provided_key else "invalid",
            )
            return JSONResponse(
                status_code=401,
                content={"success": False, "message": "Invalid or missing API key"},
            )

        return await call_next(request)
