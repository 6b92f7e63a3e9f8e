"""Shared test fixtures for instarelay."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config import RelaySettings
from src.webhook.interaction_log import InteractionLog
from src.webhook.models import MessageEvent


@pytest.fixture
def settings() -> RelaySettings:
    return make_settings()


@pytest.fixture
def interaction_log() -> InteractionLog:
    return InteractionLog(max_entries=10)


# --- Factory functions for test data ---


def make_settings(**kwargs: Any) -> RelaySettings:
    """Factory for RelaySettings with sensible defaults."""
    defaults: dict[str, Any] = {
        "verify_token": "test-verify",
        "page_access_token": "IGAAtesttoken123",
        "gemini_api_key": "gemini-test-key",
    }
    defaults.update(kwargs)
    return RelaySettings(**defaults)


def make_message_event(**kwargs: Any) -> MessageEvent:
    defaults: dict[str, Any] = {"sender_id": "user123", "text": "hello"}
    defaults.update(kwargs)
    return MessageEvent(**defaults)


def make_messaging_item(text: str = "hello", sender_id: str = "user123") -> dict[str, Any]:
    return {
        "sender": {"id": sender_id},
        "recipient": {"id": "page-1"},
        "timestamp": 1700000000000,
        "message": {"mid": f"mid-{sender_id}", "text": text},
    }


def make_webhook_payload(
    *texts: str,
    sender_id: str = "user123",
    object_type: str = "instagram",
) -> dict[str, Any]:
    """Instagram delivery with one messaging item per text."""
    return {
        "object": object_type,
        "entry": [
            {
                "id": "page-1",
                "time": 1700000000000,
                "messaging": [make_messaging_item(t, sender_id) for t in texts],
            }
        ],
    }


def make_http_response(
    status_code: int = 200,
    json_data: Any = None,
    json_error: Exception | None = None,
) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.is_success = 200 <= status_code < 300
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_data if json_data is not None else {}
    return resp


def make_async_client(**method_behaviour: Any) -> AsyncMock:
    """AsyncMock usable as ``async with httpx.AsyncClient() as client``.

    Keyword arguments map method names (get, post, request) to either a
    response or a list used as side_effect.
    """
    client = AsyncMock()
    for method, behaviour in method_behaviour.items():
        mock_method = getattr(client, method)
        if isinstance(behaviour, (list, Exception)):
            mock_method.side_effect = behaviour
        else:
            mock_method.return_value = behaviour
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


def gemini_body(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}
