"""Telegram-to-core mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from telethon.tl import types
from telethon.tl.custom import Message

from core.models import ChannelInfo, InboundMessage


def _chat_title(message: Message) -> str:
    chat = getattr(message, "chat", None)
    title = getattr(chat, "title", None)
    return str(title) if title else ""


def _author_id(message: Message) -> str:
    # Broadcast channels have no sender; fall back to the signature, then the chat.
    sender_id = getattr(message, "sender_id", None)
    if sender_id is not None:
        return str(sender_id)
    post_author = getattr(message, "post_author", None)
    if post_author:
        return str(post_author)
    return str(message.chat_id)


def _has_media(message: Message) -> bool:
    # Link previews expose their thumbnail through Message.file; only real
    # photo and document attachments count as media.
    return isinstance(getattr(message, "media", None), (types.MessageMediaPhoto, types.MessageMediaDocument))


def build_inbound_message(message: Message) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    return InboundMessage(
        id=getattr(message, "id", None),
        channel_id=message.chat_id,
        author_id=_author_id(message),
        body=message.raw_text or "",
        has_media=_has_media(message),
        is_from_self=bool(getattr(message, "out", False)),
        received_at=getattr(message, "date", None) or datetime.now(timezone.utc),
        channel_name=_chat_title(message),
    )


def is_announcement_only(entity: Any) -> bool:
    """Return True for chats where only admins can post.

    Broadcast channels always qualify; supergroups qualify when regular
    members are banned from sending messages.
    """

    if getattr(entity, "broadcast", False):
        return True
    if getattr(entity, "megagroup", False):
        rights = getattr(entity, "default_banned_rights", None)
        return bool(getattr(rights, "send_messages", False))
    return False


def dialog_title(dialog: Any) -> str:
    entity = getattr(dialog, "entity", None)
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    name = getattr(dialog, "name", None)
    if name:
        return str(name)
    entity_id = getattr(entity, "id", None)
    return str(entity_id or "unknown")


def channel_info_from_dialog(dialog: Any) -> ChannelInfo:
    """Map a Telethon Dialog to the core ChannelInfo."""

    entity = getattr(dialog, "entity", None)
    return ChannelInfo(
        id=dialog.id,
        display_name=dialog_title(dialog),
        is_group=bool(getattr(dialog, "is_group", False)),
        is_announcement_only=is_announcement_only(entity),
    )
