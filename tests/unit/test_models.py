"""Tests for shared data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models import InteractionStatus, LogEntry, LogPage
from src.webhook.models import GenerationRequest, GenerationResult


def test_log_entry_serialises_status_value() -> None:
    entry = LogEntry(
        user_id="u1", user_message="hi", bot_reply="hello", status=InteractionStatus.SUCCESS,
    )
    data = entry.model_dump(mode="json")
    assert data["status"] == "success"
    assert data["source"] == "instagram"
    assert data["timestamp"]


def test_log_entry_is_immutable() -> None:
    entry = LogEntry(user_id="u1", user_message="hi", bot_reply="x", status="error")
    with pytest.raises(ValidationError):
        entry.bot_reply = "changed"  # type: ignore[misc]


def test_log_entry_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        LogEntry(user_id="u1", user_message="hi", bot_reply="x", status="pending")


def test_log_page_requires_positive_page() -> None:
    with pytest.raises(ValidationError):
        LogPage(total=0, page=0, limit=10, logs=[])


def test_generation_request_payload_shape() -> None:
    request = GenerationRequest(
        prompt="hi", model_name="m", max_output_tokens=800,
        temperature=0.7, top_p=0.8, timeout=25.0,
    )
    assert request.to_payload() == {
        "contents": [{"parts": [{"text": "hi"}]}],
        "generationConfig": {"maxOutputTokens": 800, "temperature": 0.7, "topP": 0.8},
    }


def test_generation_result_variants() -> None:
    ok = GenerationResult.success("m", "text")
    failed = GenerationResult.failure("m", "timeout")
    assert ok.ok is True and ok.reason is None
    assert failed.ok is False and failed.text is None
