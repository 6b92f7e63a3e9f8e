"""In-memory interaction log: bounded, newest-first, process lifetime only."""

from __future__ import annotations

import logging
import threading
from collections import deque

from src.models import InteractionStatus, LogEntry, LogPage

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000
DEFAULT_PREVIEW_LENGTH = 300
_CONSOLE_PREVIEW_LENGTH = 100


def _preview(text: str, length: int) -> str:
    return text if len(text) <= length else text[:length] + "..."


class InteractionLog:
    """Bounded ring buffer of processed interactions.

    Once ``max_entries`` is reached the oldest entry is evicted on every
    append. All operations are serialised with a lock since sync
    endpoints run in a worker thread pool.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._preview_length = preview_length
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def record(
        self,
        user_id: str,
        user_message: str,
        bot_reply: str,
        source: str = "instagram",
        status: InteractionStatus = InteractionStatus.SUCCESS,
    ) -> LogEntry:
        entry = LogEntry(
            user_id=user_id,
            user_message=user_message,
            bot_reply=_preview(bot_reply, self._preview_length),
            source=source,
            status=status,
        )
        with self._lock:
            self._entries.append(entry)

        if status == InteractionStatus.SUCCESS:
            logger.info(
                "[%s] %s user %s: %s -> %s",
                entry.timestamp, source, user_id, user_message,
                _preview(bot_reply, _CONSOLE_PREVIEW_LENGTH),
            )
        else:
            logger.warning(
                "[%s] %s user %s: %s (failed: %s)",
                entry.timestamp, source, user_id, user_message, entry.bot_reply,
            )
        return entry

    def list(self, page: int = 1, limit: int = 50) -> LogPage:
        """Return one page of entries, most recent first."""
        page = max(page, 1)
        limit = min(max(limit, 1), self._max_entries)
        with self._lock:
            newest_first = list(reversed(self._entries))
        start = (page - 1) * limit
        return LogPage(
            total=len(newest_first),
            page=page,
            limit=limit,
            logs=newest_first[start:start + limit],
        )

    def clear(self) -> int:
        """Drop every entry and return how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info("Cleared %d interaction log entries", removed)
        return removed
