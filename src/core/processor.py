"""Core message relay pipeline.

This module is integration-agnostic. It only relies on the transport port,
enabling other transports without changes here.

The pipeline enforces a strict order:
1) Fast-exit for self-sent messages and unmonitored channels
2) Greeting pre-filter
3) Dedupe claim on the message identity
4) Text transform
5) Dispatch plan and execution
6) Dedupe record
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable

from core.channel_matcher import ResolvedChannels
from core.config import RelayConfig
from core.dedup import DeduplicationCache
from core.dispatch import DispatchOutcome, DispatchSequencer, plan_dispatch
from core.models import InboundMessage, MessageIdentity, MonitoredChannel, resolve_identity
from core.text_transform import TransformedBody, transform

LOGGER = logging.getLogger(__name__)


class ProcessResult(str, Enum):
    IGNORED_SELF = "ignored_self"
    IGNORED_CHANNEL = "ignored_channel"
    IGNORED_GREETING = "ignored_greeting"
    DUPLICATE = "duplicate"
    NOTHING_TO_SEND = "nothing_to_send"
    FORWARDED = "forwarded"


def is_greeting(body: str, phrases: Iterable[str]) -> bool:
    lowered = body.lower()
    return any(phrase and phrase.lower() in lowered for phrase in phrases)


def describe(
    message: InboundMessage,
    identity: MessageIdentity,
    transformed: "TransformedBody | None" = None,
    outcome: "DispatchOutcome | None" = None,
) -> str:
    """Render the message context used in relay log lines."""

    fields = [
        f"identity={identity}",
        f"author={message.author_id}",
        f"source={message.channel_name or message.channel_id}",
        f"original_text={message.body!r}",
    ]
    if transformed is not None:
        fields.append(f"transformed_text={transformed.text!r}")
    if outcome is not None:
        fields.append(f"media_filenames={outcome.media_filenames}")
        fields.append("sends=" + ",".join(f"{r.kind.value}:{r.status.value}" for r in outcome.results))
    return " ".join(fields)


class RelayProcessor:
    """Orchestrates filtering, dedupe, transform and dispatch for one message."""

    def __init__(
        self,
        config: RelayConfig,
        channels: ResolvedChannels,
        cache: DeduplicationCache,
        sequencer: DispatchSequencer,
    ) -> None:
        self._config = config
        self._channels = channels
        self._source_ids = channels.source_ids
        self._cache = cache
        self._sequencer = sequencer

    @property
    def target(self) -> MonitoredChannel:
        return self._channels.target

    async def handle(self, message: InboundMessage) -> ProcessResult:
        """Process one inbound message through the relay pipeline."""

        if message.is_from_self:
            return ProcessResult.IGNORED_SELF

        # Events from every other chat arrive here too; drop them quietly.
        if message.channel_id not in self._source_ids:
            return ProcessResult.IGNORED_CHANNEL

        if is_greeting(message.body, self._config.greeting_phrases):
            LOGGER.info("Greeting message ignored: %r", message.body[:50])
            return ProcessResult.IGNORED_GREETING

        identity = resolve_identity(message)
        LOGGER.info("New message from monitored channel: %s", describe(message, identity))

        if not self._cache.claim(identity):
            LOGGER.warning("Duplicate inside dedupe window skipped: %s", describe(message, identity))
            return ProcessResult.DUPLICATE

        transformed = transform(message.body, self._config.transform)
        plan = plan_dispatch(message.has_media, transformed, self._config.dispatch)
        try:
            outcome = await self._sequencer.execute(plan, message, self._channels.target)
        finally:
            # Refresh even when cancelled mid-delay so a redelivery still waits.
            self._cache.record(identity)

        context = describe(message, identity, transformed, outcome)
        for failure in outcome.failures:
            LOGGER.error("Relay %s send %s (%s): %s", failure.kind.value, failure.status.value, failure.error, context)

        if plan.is_noop:
            LOGGER.info("Nothing left to send after transform: %s", context)
            return ProcessResult.NOTHING_TO_SEND

        LOGGER.info("Message processed for %s: %s", self._channels.target.display_name, context)
        return ProcessResult.FORWARDED
