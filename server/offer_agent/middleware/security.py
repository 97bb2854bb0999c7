"""
Request gate middleware for the offer agent.
"""

import hmac
from typing import Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from offer_agent.core.logging import get_logger

logger = get_logger(__name__)

AUTH_HEADER = "x-agent-auth"


class SharedSecretMiddleware(BaseHTTPMiddleware):
    """Reject any request whose x-agent-auth header does not match the shared secret."""

    def __init__(self, app: ASGIApp, token: str, exempt_paths: Iterable[str] = ()):
        super().__init__(app)
        self._token = token.encode("utf-8")
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        supplied = request.headers.get(AUTH_HEADER, "").encode("utf-8")
        if not hmac.compare_digest(supplied, self._token):
            logger.warning(
                "auth.rejected",
                path=request.url.path,
                method=request.method,
                header_present=AUTH_HEADER in request.headers,
            )
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

        return await call_next(request)


class ConcurrencyLimitMiddleware(BaseHTTPMiddleware):
    """Refuse new work once too many requests are in flight. Nothing is queued."""

    def __init__(self, app: ASGIApp, limit: int, retry_after: int = 1):
        super().__init__(app)
        self.limit = limit
        self.retry_after = retry_after
        self.in_flight = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self.in_flight >= self.limit:
            logger.warning("concurrency.saturated", in_flight=self.in_flight, limit=self.limit)
            return JSONResponse(
                status_code=503,
                content={"error": "Server busy"},
                headers={"Retry-After": str(self.retry_after)},
            )

        self.in_flight += 1
        try:
            return await call_next(request)
        finally:
            self.in_flight -= 1
