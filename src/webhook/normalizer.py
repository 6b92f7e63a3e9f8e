"""Inbound event normalizer for Instagram webhook deliveries.

Flattens a Graph API webhook payload into ``MessageEvent`` objects.
Handles both shapes Instagram delivers text in:

- ``entry[].messaging[]`` (direct messages)
- ``entry[].changes[]`` with ``field == "messages"`` (story replies and
  other change notifications carrying a sender and message text)

Anything else (reads, reactions, echoes, attachments without text) is
dropped. Malformed payloads yield nothing and never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from src.webhook.models import MessageEvent

logger = logging.getLogger(__name__)

SUPPORTED_OBJECTS = frozenset({"instagram", "page"})


def extract_message_events(payload: Any) -> Iterator[MessageEvent]:
    """Yield a ``MessageEvent`` for every text message in the payload."""
    if not isinstance(payload, dict):
        return
    source = payload.get("object")
    if source not in SUPPORTED_OBJECTS:
        logger.info("Ignoring webhook for unsupported object %r", source)
        return

    entries = payload.get("entry")
    if not isinstance(entries, list) or not entries:
        logger.info("No entries in webhook delivery")
        return

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        for item in _as_list(entry.get("messaging")):
            event = _event_from_item(item, source)
            if event is not None:
                yield event
        for change in _as_list(entry.get("changes")):
            if not isinstance(change, dict) or change.get("field") != "messages":
                continue
            event = _event_from_item(change.get("value"), source)
            if event is not None:
                yield event


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _event_from_item(item: Any, source: str) -> MessageEvent | None:
    if not isinstance(item, dict):
        return None
    message = item.get("message")
    sender = item.get("sender")
    if not isinstance(message, dict) or not isinstance(sender, dict):
        return None
    if message.get("is_echo"):
        return None

    text = message.get("text")
    sender_id = sender.get("id")
    if not isinstance(text, str) or not sender_id:
        return None
    text = text.strip()
    if not text:
        return None
    return MessageEvent(sender_id=str(sender_id), text=text, source=source)
