"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class ChannelInfo:
    """One entry of the transport's channel list."""

    id: int
    display_name: str
    is_group: bool
    is_announcement_only: bool


@dataclass(frozen=True)
class MonitoredChannel:
    """A resolved source channel, fixed for the lifetime of the process."""

    id: int
    display_name: str


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message context used by the relay pipeline."""

    id: Optional[int]
    channel_id: int
    author_id: str
    body: str
    has_media: bool
    is_from_self: bool
    received_at: datetime
    channel_name: str = ""


@dataclass(frozen=True)
class MediaBlob:
    """Downloaded media ready to be re-sent."""

    data: bytes = field(repr=False)
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StableId:
    """Identity taken from the transport's message id."""

    channel_id: int
    message_id: int

    def __str__(self) -> str:
        return f"{self.channel_id}:{self.message_id}"


@dataclass(frozen=True)
class CompositeFallback:
    """Identity built from content when no message id is available.

    Distinct authors sending identical text collide on this key.
    """

    body: str
    has_media: bool

    def __str__(self) -> str:
        return f"{self.body}-{str(self.has_media).lower()}"


MessageIdentity = Union[StableId, CompositeFallback]


def resolve_identity(message: InboundMessage) -> MessageIdentity:
    """Return the dedupe identity for a message, resolved once per pass."""

    if message.id is not None:
        return StableId(channel_id=message.channel_id, message_id=message.id)
    return CompositeFallback(body=message.body, has_media=message.has_media)
