"""Telethon transport adapter.

Implements the core TransportPort on top of a connected TelegramClient.
Any Telethon failure is wrapped so the core only ever sees relay errors;
Telethon raises more than RPCError (buffer, security and type errors).
"""

from __future__ import annotations

import io
import logging
from typing import List, Optional

from telethon import TelegramClient

from adapters.telegram_mapper import channel_info_from_dialog
from core.dispatch import media_filename
from core.errors import MediaDownloadError, SendError
from core.models import ChannelInfo, InboundMessage, MediaBlob

LOGGER = logging.getLogger(__name__)


class TelegramTransport:
    """Transport adapter that talks to Telegram through Telethon."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def list_channels(self) -> List[ChannelInfo]:
        """Return every dialog of the account that is a group or channel."""

        channels: List[ChannelInfo] = []
        async for dialog in self._client.iter_dialogs():
            if getattr(dialog, "is_user", False):
                continue
            channels.append(channel_info_from_dialog(dialog))
        LOGGER.debug("Listed %s group/channel dialogs", len(channels))
        return channels

    async def download_media(self, message: InboundMessage) -> Optional[MediaBlob]:
        """Fetch the original message again and download its media to memory."""

        try:
            original = await self._client.get_messages(message.channel_id, ids=message.id)
            if original is None or original.file is None:
                return None
            data = await self._client.download_media(original, file=bytes)
        except Exception as exc:
            raise MediaDownloadError(f"download failed for message {message.id}: {exc}") from exc

        if not data:
            return None
        mime_type = original.file.mime_type or "application/octet-stream"
        return MediaBlob(data=data, mime_type=mime_type, filename=media_filename(message, mime_type))

    async def send_text(self, channel_id: int, text: str) -> None:
        try:
            await self._client.send_message(channel_id, text)
        except Exception as exc:
            raise SendError(f"text send to {channel_id} failed: {exc}") from exc

    async def send_media(self, channel_id: int, blob: MediaBlob) -> None:
        # Telethon takes the file name from the stream's name attribute.
        stream = io.BytesIO(blob.data)
        stream.name = blob.filename
        try:
            await self._client.send_file(channel_id, stream)
        except Exception as exc:
            raise SendError(f"media send to {channel_id} failed: {exc}") from exc
