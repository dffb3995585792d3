"""Telegram reply and thread-reading adapters.

Implements the core ReplyPort and ThreadReaderPort on top of a Telethon
client. Chat and message ids travel through the core as strings and are
converted back to integers here.
"""

from __future__ import annotations

import logging
from typing import List

from adapters.reply_formatting import format_reply, parse_mode_for
from core.models import Reply, RouteMode

LOGGER = logging.getLogger(__name__)


class TelegramReplier:
    """ReplyPort adapter that posts routed replies with Telethon."""

    def __init__(self, client, reply_format: str = "markdown") -> None:
        self._client = client
        self._reply_format = reply_format

    async def post(self, reply: Reply) -> None:
        body = format_reply(reply.fragments, self._reply_format)
        parse_mode = parse_mode_for(self._reply_format)

        if reply.mode is RouteMode.DIRECT_MESSAGE:
            # Bots can only message users who have started them; Telethon raises otherwise.
            await self._client.send_message(int(reply.user_id), body, parse_mode=parse_mode, link_preview=False)
            return

        reply_to = int(reply.anchor) if reply.anchor else None
        await self._client.send_message(
            int(reply.channel_id),
            body,
            reply_to=reply_to,
            parse_mode=parse_mode,
            link_preview=False,
        )


class TelegramThreadReader:
    """ThreadReaderPort adapter: the thread root followed by its replies."""

    def __init__(self, client, limit: int = 200) -> None:
        self._client = client
        self._limit = limit

    async def fetch_thread(self, channel_id: str, thread_timestamp: str) -> List[str]:
        chat_id = int(channel_id)
        root_id = int(thread_timestamp)
        texts: List[str] = []

        root = await self._client.get_messages(chat_id, ids=root_id)
        if root is not None and root.raw_text:
            texts.append(root.raw_text)

        replies = []
        async for message in self._client.iter_messages(chat_id, reply_to=root_id, limit=self._limit):
            replies.append(message)
        # iter_messages returns newest first.
        for message in reversed(replies):
            if message.raw_text:
                texts.append(message.raw_text)
        LOGGER.debug("fetched %s messages from thread %s/%s", len(texts), channel_id, thread_timestamp)
        return texts
