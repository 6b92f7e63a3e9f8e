"""FastAPI application: Instagram webhook plus diagnostics."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.api.auth_middleware import AdminAuthMiddleware
from src.api.diagnostics import create_diagnostics_router
from src.config import RelaySettings
from src.webhook.dispatcher import InstagramDispatcher
from src.webhook.generation import GeminiClient
from src.webhook.interaction_log import InteractionLog
from src.webhook.pipeline import MessagePipeline
from src.webhook.search import SearchAugmenter
from src.webhook.verification import WebhookVerifier

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"
ACK_BODY = "EVENT_RECEIVED"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables.

    Raises ConfigurationError before any route is served when a required
    variable is missing.
    """
    return create_app(RelaySettings.from_env())


def create_app(
    settings: RelaySettings,
    interaction_log: InteractionLog | None = None,
    augmenter: SearchAugmenter | None = None,
    generator: GeminiClient | None = None,
    dispatcher: InstagramDispatcher | None = None,
) -> FastAPI:
    """Create the relay FastAPI app. Collaborators default to the real clients."""
    if interaction_log is None:
        interaction_log = InteractionLog(max_entries=settings.log_max_entries)
    if augmenter is None:
        augmenter = SearchAugmenter(settings.serp_api_key)
    if generator is None:
        generator = GeminiClient(settings.gemini_api_key, primary_model=settings.gemini_model)
    if dispatcher is None:
        dispatcher = InstagramDispatcher(
            settings.page_access_token, api_base=settings.graph_api_base,
        )
    pipeline = MessagePipeline(augmenter, generator, dispatcher, interaction_log)
    verifier = WebhookVerifier(settings.verify_token, settings.app_secret)

    app = FastAPI(docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.interaction_log = interaction_log
    app.state.pipeline = pipeline

    @app.get(WEBHOOK_PATH)
    async def verify_webhook(request: Request) -> Response:
        result = verifier.handle_verification(dict(request.query_params))
        if result.status_code == 200:
            logger.info("Webhook verified")
            return PlainTextResponse(result.content)
        logger.warning(
            "Webhook verification failed (mode=%r, token provided=%s)",
            request.query_params.get("hub.mode"),
            "hub.verify_token" in request.query_params,
        )
        return JSONResponse({"error": result.error}, status_code=result.status_code)

    @app.post(WEBHOOK_PATH)
    async def receive_webhook(request: Request, background_tasks: BackgroundTasks) -> Response:
        body = await request.body()
        if not verifier.verify_signature(request.headers, body):
            return JSONResponse({"error": "Invalid webhook signature"}, status_code=401)

        try:
            payload: Any = json.loads(body) if body else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.info("Ignoring webhook delivery with malformed JSON body")
            payload = {}

        entries = payload.get("entry") if isinstance(payload, dict) else None
        logger.info(
            "Webhook received: object=%r entries=%d",
            payload.get("object") if isinstance(payload, dict) else None,
            len(entries) if isinstance(entries, list) else 0,
        )
        background_tasks.add_task(_run_delivery, pipeline, payload)
        return PlainTextResponse(ACK_BODY)

    app.include_router(
        create_diagnostics_router(settings, interaction_log, dispatcher, generator),
    )

    if settings.admin_token:
        app.add_middleware(AdminAuthMiddleware, token=settings.admin_token)

    return app


async def _run_delivery(pipeline: MessagePipeline, payload: Any) -> None:
    try:
        await pipeline.handle_delivery(payload)
    except Exception:  # background task: nothing upstream to report to
        logger.exception("Webhook processing error")
