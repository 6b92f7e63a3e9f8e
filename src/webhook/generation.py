"""Gemini generation client with ordered fallback models.

The primary model is tried first with the full token budget. When it
fails (timeout, transport error, non-2xx, malformed body or empty text)
the fallback models are tried in priority order with a smaller budget
and a shorter timeout. If every attempt fails the caller gets a fixed
apology string instead of an exception.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.webhook.models import FallbackModel, GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
PRIMARY_MODEL = "gemini-2.0-flash-lite"

FALLBACK_MODELS: tuple[FallbackModel, ...] = (
    FallbackModel(name="gemini-1.5-flash", priority=1),
    FallbackModel(name="gemini-1.5-flash-8b", priority=2),
    FallbackModel(name="gemini-2.0-flash", priority=3),
)

APOLOGY_REPLY = "I'm having trouble connecting to the AI service. Please try again later."
REPHRASE_REPLY = "I didn't quite get that. Could you please rephrase your question?"

MAX_REPLY_LENGTH = 1500
_ELLIPSIS = "..."

_PRIMARY_MAX_TOKENS = 800
_FALLBACK_MAX_TOKENS = 500
_TEMPERATURE = 0.7
_TOP_P = 0.8
_PRIMARY_TIMEOUT_SECONDS = 25.0
_FALLBACK_TIMEOUT_SECONDS = 10.0


def build_assistant_prompt(user_prompt: str, used_search: bool = False) -> str:
    suffix = " based on the search results" if used_search else ""
    return (
        "You are a helpful AI assistant for Instagram. Respond in a friendly, "
        "conversational tone. Keep responses clear and engaging.\n\n"
        f"User message: {user_prompt}\n\n"
        f"Please provide a helpful response{suffix}."
    )


def postprocess_reply(text: str) -> str:
    """Trim, substitute a rephrase request for empty text and cap the length."""
    reply = text.strip()
    if not reply:
        return REPHRASE_REPLY
    if len(reply) > MAX_REPLY_LENGTH:
        return reply[:MAX_REPLY_LENGTH - len(_ELLIPSIS)] + _ELLIPSIS
    return reply


def extract_candidate_text(data: Any) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` or None if absent."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class GeminiClient:
    """Generative Language API client with ordered fallback."""

    def __init__(
        self,
        api_key: str,
        primary_model: str = PRIMARY_MODEL,
        fallback_models: tuple[FallbackModel, ...] = FALLBACK_MODELS,
        api_base: str = GEMINI_API_BASE,
    ) -> None:
        self._api_key = api_key
        self._primary_model = primary_model
        self._fallback_models = tuple(sorted(fallback_models, key=lambda m: m.priority))
        self._api_base = api_base.rstrip("/")

    @property
    def primary_model(self) -> str:
        return self._primary_model

    @property
    def fallback_models(self) -> tuple[FallbackModel, ...]:
        return self._fallback_models

    async def generate(self, prompt: str, used_search: bool = False) -> str:
        """Return a deliverable reply for ``prompt``. Never raises."""
        full_prompt = build_assistant_prompt(prompt, used_search)
        result = await self._attempt(self._primary_request(full_prompt))
        if result.ok:
            logger.info("Reply generated by %s", result.model_name)
            return postprocess_reply(result.text or "")

        logger.warning(
            "Primary model %s failed: %s; trying %d fallback model(s)",
            result.model_name, result.reason, len(self._fallback_models),
        )
        for model in self._fallback_models:
            result = await self._attempt(self._fallback_request(full_prompt, model.name))
            if result.ok:
                logger.info("Reply generated by fallback model %s", result.model_name)
                return postprocess_reply(result.text or "")
            logger.warning("Fallback model %s failed: %s", result.model_name, result.reason)

        logger.error("All generation models failed; sending apology reply")
        return APOLOGY_REPLY

    async def probe(self, prompt: str) -> GenerationResult:
        """Single primary-model attempt without fallback, for diagnostics."""
        return await self._attempt(self._primary_request(prompt))

    def _primary_request(self, prompt: str) -> GenerationRequest:
        return GenerationRequest(
            prompt=prompt,
            model_name=self._primary_model,
            max_output_tokens=_PRIMARY_MAX_TOKENS,
            temperature=_TEMPERATURE,
            top_p=_TOP_P,
            timeout=_PRIMARY_TIMEOUT_SECONDS,
        )

    def _fallback_request(self, prompt: str, model_name: str) -> GenerationRequest:
        return GenerationRequest(
            prompt=prompt,
            model_name=model_name,
            max_output_tokens=_FALLBACK_MAX_TOKENS,
            temperature=_TEMPERATURE,
            top_p=_TOP_P,
            timeout=_FALLBACK_TIMEOUT_SECONDS,
        )

    async def _attempt(self, request: GenerationRequest) -> GenerationResult:
        url = f"{self._api_base}/{request.model_name}:generateContent"
        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(
                    url,
                    params={"key": self._api_key},
                    json=request.to_payload(),
                    headers={"Content-Type": "application/json"},
                    timeout=request.timeout,
                )
        except httpx.TimeoutException:
            return GenerationResult.failure(request.model_name, "timeout")
        except httpx.HTTPError as exc:
            return GenerationResult.failure(request.model_name, f"transport error: {exc}")

        if not resp.is_success:
            return GenerationResult.failure(request.model_name, f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            return GenerationResult.failure(request.model_name, "malformed response body")

        text = extract_candidate_text(data)
        if not text:
            return GenerationResult.failure(request.model_name, "empty response")
        return GenerationResult.success(request.model_name, text)
