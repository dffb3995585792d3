"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the dispatcher.
"""

from __future__ import annotations

import logging
from typing import Optional

from telethon.tl.custom import Message
from telethon.tl.types import PeerChannel, PeerChat

from core.models import InboundMessage

LOGGER = logging.getLogger(__name__)


class ChannelResolver:
    """Resolve a chat id to a channel name, with a chat_id cache."""

    def __init__(self, client) -> None:
        self._client = client
        self._cache: dict[int, Optional[str]] = {}

    async def channel_name(self, chat_id: int) -> Optional[str]:
        if chat_id in self._cache:
            return self._cache[chat_id]
        try:
            entity = await self._client.get_entity(chat_id)
        except Exception:
            LOGGER.warning("error getting channel info for %s", chat_id, exc_info=True)
            return None
        name = channel_name_from_entity(entity)
        self._cache[chat_id] = name
        return name


def channel_name_from_entity(entity) -> Optional[str]:
    username = getattr(entity, "username", None)
    if isinstance(username, str) and username:
        return username.lower()
    title = getattr(entity, "title", None)
    if isinstance(title, str) and title:
        return title.strip().lower()
    return None


def thread_id_from_message(message: Message) -> Optional[int]:
    """Return the thread a message belongs to: forum topic, reply thread, or replied message."""

    reply_to = getattr(message, "reply_to", None)
    if not reply_to:
        return None
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None)


def build_permalink(message: Message, message_id: int) -> Optional[str]:
    chat = getattr(message, "chat", None)
    username = getattr(chat, "username", None)
    # Prefer public usernames for permalinks when available.
    if isinstance(username, str) and username:
        return f"https://t.me/{username}/{message_id}"

    peer_id = getattr(message, "peer_id", None)
    if isinstance(peer_id, PeerChannel):
        return f"https://t.me/c/{peer_id.channel_id}/{message_id}"
    if isinstance(peer_id, PeerChat):
        return f"https://t.me/c/{peer_id.chat_id}/{message_id}"
    # PeerUser has no chat/channel id; no permalink is possible.
    return None


async def build_message(
    message: Message,
    channel_resolver: Optional[ChannelResolver] = None,
    sender=None,
) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    thread_id = thread_id_from_message(message)
    is_private = bool(getattr(message, "is_private", False))
    mentioned = bool(getattr(message, "mentioned", False))

    channel_name = None
    if channel_resolver is not None and not is_private:
        channel_name = await channel_resolver.channel_name(message.chat_id)

    return InboundMessage(
        channel_id=str(message.chat_id),
        sender_id=str(message.sender_id),
        text=message.raw_text or "",
        timestamp=str(message.id),
        thread_timestamp=str(thread_id) if thread_id is not None else None,
        is_bot_message=bool(getattr(sender, "bot", False)),
        is_mention_event=is_private or mentioned,
        channel_name=channel_name,
        permalink=build_permalink(message, thread_id if thread_id is not None else message.id),
    )
