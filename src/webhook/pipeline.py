"""Message-processing pipeline.

Orchestrates each inbound message event through its stages using direct
function calls:

1. Normalize (webhook payload -> message events)
2. Augment (optional web search context)
3. Generate (primary model, then ordered fallbacks)
4. Dispatch (single send attempt via the Graph API)
5. Log (interaction log entry, success or error)

Every event ends in stage 5. Stages 2 and 3 degrade internally; a
dispatch failure is recorded as an error entry. No event's failure
aborts the others in the same delivery.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.models import InteractionStatus, LogEntry, PipelineStage
from src.webhook.dispatcher import DeliveryError
from src.webhook.normalizer import extract_message_events

if TYPE_CHECKING:
    from src.webhook.dispatcher import InstagramDispatcher
    from src.webhook.generation import GeminiClient
    from src.webhook.interaction_log import InteractionLog
    from src.webhook.models import MessageEvent
    from src.webhook.search import SearchAugmenter

logger = logging.getLogger(__name__)


class MessagePipeline:
    """Runs message events from receipt to a logged interaction."""

    def __init__(
        self,
        augmenter: SearchAugmenter,
        generator: GeminiClient,
        dispatcher: InstagramDispatcher,
        interaction_log: InteractionLog,
    ) -> None:
        self._augmenter = augmenter
        self._generator = generator
        self._dispatcher = dispatcher
        self._log = interaction_log

    async def handle_delivery(self, payload: Any) -> int:
        """Process every message event in a webhook delivery, in order.

        Returns the number of events processed.
        """
        processed = 0
        for event in extract_message_events(payload):
            await self.process_event(event)
            processed += 1
        if processed:
            logger.info("Processed %d message event(s)", processed)
        return processed

    async def process_event(self, event: MessageEvent) -> LogEntry:
        """Run one event through all stages; always returns the logged entry."""
        stage = PipelineStage.RECEIVED
        logger.info("Message from %s: %r", event.sender_id, event.text)
        try:
            stage = self._advance(event, PipelineStage.AUGMENTING)
            augmented = await self._augmenter.augment(event.text)

            stage = self._advance(event, PipelineStage.GENERATING)
            reply = await self._generator.generate(augmented.prompt, augmented.used_search)

            stage = self._advance(event, PipelineStage.DISPATCHING)
            await self._dispatcher.send(event.sender_id, reply)
        except DeliveryError as exc:
            logger.error(
                "Failed to deliver reply to %s (%s): %s",
                event.sender_id, exc.reason, exc.message,
            )
            return self._finish(event, exc.message, InteractionStatus.ERROR)
        except Exception as exc:  # contain the failure to this event
            logger.exception("Unexpected failure while %s event from %s", stage.value, event.sender_id)
            return self._finish(event, f"{type(exc).__name__}: {exc}", InteractionStatus.ERROR)

        return self._finish(event, reply, InteractionStatus.SUCCESS)

    def _advance(self, event: MessageEvent, stage: PipelineStage) -> PipelineStage:
        logger.debug("Event from %s -> %s", event.sender_id, stage.value)
        return stage

    def _finish(
        self, event: MessageEvent, reply: str, status: InteractionStatus,
    ) -> LogEntry:
        self._advance(event, PipelineStage.LOGGED)
        return self._log.record(
            user_id=event.sender_id,
            user_message=event.text,
            bot_reply=reply,
            source=event.source,
            status=status,
        )
