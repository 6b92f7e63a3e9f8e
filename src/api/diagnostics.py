"""Diagnostic API endpoints.

Provides endpoints for:
- Health and status reporting
- Listing and clearing the interaction log
- Masked configuration report
- Credential and generation probes
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.config import APP_VERSION
from src.webhook.dispatcher import DeliveryError

if TYPE_CHECKING:
    from src.config import RelaySettings
    from src.webhook.dispatcher import InstagramDispatcher
    from src.webhook.generation import GeminiClient
    from src.webhook.interaction_log import InteractionLog

logger = logging.getLogger(__name__)

GENERATION_PROBE_PROMPT = (
    "Hello! Please respond with a short greeting to confirm the API is working."
)


def create_diagnostics_router(
    settings: RelaySettings,
    interaction_log: InteractionLog,
    dispatcher: InstagramDispatcher,
    generator: GeminiClient,
) -> APIRouter:
    """Create the diagnostics API router."""
    router = APIRouter()
    started_at = time.monotonic()

    @router.get("/")
    @router.get("/health")
    async def health() -> dict[str, object]:
        return {
            "status": "OK",
            "message": "Instagram AI relay running",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": APP_VERSION,
            "endpoints": {
                "webhook": "/webhook",
                "status": "/status",
                "logs": "/logs",
                "environment": "/debug-env",
                "test_token": "/test-token",
                "test_gemini": "/test-gemini",
            },
        }

    @router.get("/status")
    async def status() -> dict[str, object]:
        return {
            "status": "healthy",
            "server_time": datetime.now(UTC).isoformat(),
            "uptime_seconds": int(time.monotonic() - started_at),
            "interactions": len(interaction_log),
            "search_enabled": settings.search_enabled,
        }

    @router.get("/logs")
    def list_logs(page: int = 1, limit: int = 50) -> JSONResponse:
        if page < 1 or limit < 1:
            return JSONResponse(
                {"error": "page and limit must be positive integers"},
                status_code=400,
            )
        return JSONResponse(interaction_log.list(page=page, limit=limit).model_dump(mode="json"))

    @router.delete("/logs")
    def clear_logs() -> dict[str, int]:
        return {"cleared": interaction_log.clear()}

    @router.get("/debug-env")
    async def debug_env() -> dict[str, object]:
        return {
            "timestamp": datetime.now(UTC).isoformat(),
            "environment_variables": settings.masked_summary(),
            "fallback_models": [m.name for m in generator.fallback_models],
            "primary_model": generator.primary_model,
        }

    @router.get("/test-token")
    async def test_token() -> JSONResponse:
        """Check the page access token against the Graph API."""
        try:
            account = await dispatcher.check_credential()
        except DeliveryError as e:
            logger.warning("Token probe failed: %s", e.message)
            return JSONResponse(
                {"status": "invalid", "error": e.to_dict()},
                status_code=400,
            )
        return JSONResponse({"status": "valid", "account_info": account})

    @router.get("/test-gemini")
    async def test_gemini() -> JSONResponse:
        """Send a fixed prompt to the primary model without fallback."""
        result = await generator.probe(GENERATION_PROBE_PROMPT)
        if not result.ok:
            logger.warning("Generation probe failed: %s", result.reason)
            return JSONResponse(
                {"status": "failed", "model": result.model_name, "error": result.reason},
                status_code=400,
            )
        return JSONResponse({
            "status": "working",
            "model": result.model_name,
            "test_prompt": GENERATION_PROBE_PROMPT,
            "response": result.text,
        })

    return router
