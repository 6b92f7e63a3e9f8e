"""ASGI middleware guarding diagnostic endpoints with an admin Bearer token."""

from __future__ import annotations

import hmac
import logging

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

# Paths that bypass authentication (exact match). The webhook carries its
# own verify token / signature check.
PUBLIC_PATHS = frozenset({"/", "/health", "/status", "/webhook"})


class AdminAuthMiddleware:
    """Validates Bearer tokens using constant-time comparison."""

    def __init__(
        self,
        app: ASGIApp,
        token: str,
        public_paths: frozenset[str] = PUBLIC_PATHS,
    ) -> None:
        self.app = app
        self._token = token.encode()
        self._public_paths = public_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        path = request.url.path
        if path in self._public_paths:
            await self.app(scope, receive, send)
            return

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            self._log_failure(request, "missing_token" if not auth_header else "invalid_format")
            response = JSONResponse({"error": "Authentication required"}, status_code=401)
            await response(scope, receive, send)
            return

        if not hmac.compare_digest(auth_header[7:].encode(), self._token):
            self._log_failure(request, "invalid_token")
            response = JSONResponse({"error": "Access denied"}, status_code=403)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)

    def _log_failure(self, request: Request, reason: str) -> None:
        logger.warning(
            "Admin auth failure (%s) for %s %s from %s",
            reason, request.method, request.url.path,
            request.client.host if request.client else "unknown",
        )
