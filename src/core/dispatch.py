"""Dispatch planning and sequencing (core domain).

Media always goes out first with no delay and no caption. Text always goes
out second, after the configured delay, whether or not media was present or
succeeded. Each send fails on its own and is never retried.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from core.config import DispatchConfig
from core.errors import MediaDownloadError, SendError
from core.models import InboundMessage, MediaBlob, MonitoredChannel
from core.ports import TransportPort
from core.text_transform import TransformedBody

LOGGER = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class SendKind(str, Enum):
    MEDIA = "media"
    TEXT = "text"


class SendStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchPlan:
    """Which sends to make for one message, and with what delay."""

    send_media: bool
    send_text: bool
    text_payload: Optional[str] = None
    text_delay_ms: int = 0
    media_payload: Optional[MediaBlob] = None

    @property
    def is_noop(self) -> bool:
        return not self.send_media and not self.send_text


@dataclass(frozen=True)
class SendResult:
    """Outcome of one outbound send."""

    kind: SendKind
    status: SendStatus
    delay_ms: int = 0
    filename: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DispatchOutcome:
    """Ordered results of executing a plan."""

    results: List[SendResult] = field(default_factory=list)

    def add(self, result: SendResult) -> None:
        self.results.append(result)

    def of(self, kind: SendKind) -> Optional[SendResult]:
        for result in self.results:
            if result.kind is kind:
                return result
        return None

    @property
    def sent(self) -> List[SendResult]:
        return [r for r in self.results if r.status is SendStatus.SENT]

    @property
    def failures(self) -> List[SendResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def media_filenames(self) -> List[str]:
        return [r.filename for r in self.results if r.kind is SendKind.MEDIA and r.filename]


def plan_dispatch(has_media: bool, body: TransformedBody, config: DispatchConfig) -> DispatchPlan:
    """Decide the sends for a message with or without media."""

    send_text = not body.is_empty
    return DispatchPlan(
        send_media=has_media,
        send_text=send_text,
        text_payload=body.text if send_text else None,
        # There is no fast path: every text send waits, media or not.
        text_delay_ms=config.text_delay_ms if send_text else 0,
    )


def media_filename(message: InboundMessage, mime_type: str) -> str:
    """Build the outbound filename, e.g. ``media-42.jpeg``."""

    extension = (mime_type.split("/", 1)[1] if "/" in mime_type else "") or "bin"
    return f"media-{message.id if message.id is not None else 'unknown'}.{extension}"


class DispatchSequencer:
    """Execute a dispatch plan against the transport."""

    def __init__(self, transport: TransportPort, sleep: Sleeper = asyncio.sleep) -> None:
        self._transport = transport
        self._sleep = sleep

    async def _download(self, plan: DispatchPlan, message: InboundMessage) -> Optional[MediaBlob]:
        if plan.media_payload is not None:
            return plan.media_payload
        return await self._transport.download_media(message)

    async def _send_media(
        self, plan: DispatchPlan, message: InboundMessage, target: MonitoredChannel
    ) -> SendResult:
        # A failed download skips the media send; the text still goes out.
        try:
            blob = await self._download(plan, message)
        except MediaDownloadError as exc:
            LOGGER.error("Media download failed for %s: %s", message.id, exc)
            return SendResult(kind=SendKind.MEDIA, status=SendStatus.SKIPPED, error=str(exc))
        if blob is None or not blob.data:
            LOGGER.warning("Media download returned no data for %s", message.id)
            return SendResult(
                kind=SendKind.MEDIA,
                status=SendStatus.SKIPPED,
                error="media download returned no data",
            )

        LOGGER.info(
            "Media downloaded for %s (%s, %s bytes); sending without delay",
            message.id,
            blob.mime_type,
            blob.size,
        )
        try:
            await self._transport.send_media(target.id, blob)
        except SendError as exc:
            LOGGER.error("Media send failed for %s: %s", message.id, exc)
            return SendResult(
                kind=SendKind.MEDIA,
                status=SendStatus.FAILED,
                filename=blob.filename,
                error=str(exc),
            )
        LOGGER.info("Media forwarded: %s", blob.filename)
        return SendResult(kind=SendKind.MEDIA, status=SendStatus.SENT, filename=blob.filename)

    async def _send_text(self, plan: DispatchPlan, message: InboundMessage, target: MonitoredChannel) -> SendResult:
        LOGGER.info("Waiting %sms before sending text for %s", plan.text_delay_ms, message.id)
        await self._sleep(plan.text_delay_ms / 1000)
        try:
            await self._transport.send_text(target.id, plan.text_payload or "")
        except SendError as exc:
            LOGGER.error("Text send failed for %s: %s", message.id, exc)
            return SendResult(
                kind=SendKind.TEXT,
                status=SendStatus.FAILED,
                delay_ms=plan.text_delay_ms,
                error=str(exc),
            )
        LOGGER.info("Text forwarded for %s", message.id)
        return SendResult(kind=SendKind.TEXT, status=SendStatus.SENT, delay_ms=plan.text_delay_ms)

    async def execute(
        self,
        plan: DispatchPlan,
        message: InboundMessage,
        target: MonitoredChannel,
    ) -> DispatchOutcome:
        """Run the plan; per-send failures are recorded, never raised."""

        outcome = DispatchOutcome()
        if plan.send_media:
            outcome.add(await self._send_media(plan, message, target))
        if plan.send_text:
            outcome.add(await self._send_text(plan, message, target))
        return outcome
