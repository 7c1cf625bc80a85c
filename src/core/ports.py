"""Ports (interfaces) used by the relay core.

Ports define the minimal contracts for the messaging transport so that the
core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from core.models import ChannelInfo, InboundMessage, MediaBlob


class TransportPort(Protocol):
    """Transport operations required by the relay core.

    download_media, send_text and send_media raise MediaDownloadError or
    SendError on failure.
    """

    async def list_channels(self) -> List[ChannelInfo]:
        ...

    async def download_media(self, message: InboundMessage) -> Optional[MediaBlob]:
        ...

    async def send_text(self, channel_id: int, text: str) -> None:
        ...

    async def send_media(self, channel_id: int, blob: MediaBlob) -> None:
        ...
