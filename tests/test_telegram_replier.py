from __future__ import annotations

import asyncio

from adapters.telegram_replier import TelegramReplier, TelegramThreadReader
from core.models import Fragment, Reply, RouteMode


class DummyText:
    def __init__(self, raw_text: str) -> None:
        self.raw_text = raw_text


class DummyClient:
    def __init__(self, root: "DummyText | None" = None, replies: "list[DummyText] | None" = None) -> None:
        self.sent: list[tuple[int, str, dict]] = []
        self._root = root
        self._replies = replies or []

    async def send_message(self, entity: int, message: str, **kwargs) -> None:
        self.sent.append((entity, message, kwargs))

    async def get_messages(self, chat_id: int, ids: int):
        return self._root

    async def iter_messages(self, chat_id: int, reply_to: int, limit: int):
        for message in self._replies:
            yield message


def test_thread_reply_is_anchored() -> None:
    client = DummyClient()
    reply = Reply(fragments=(Fragment(text="hi"),), mode=RouteMode.THREAD, channel_id="-100123", anchor="55")

    asyncio.run(TelegramReplier(client).post(reply))

    entity, body, kwargs = client.sent[0]
    assert entity == -100123
    assert body == "hi"
    assert kwargs["reply_to"] == 55
    assert kwargs["parse_mode"] == "md"


def test_channel_reply_without_anchor_posts_top_level() -> None:
    client = DummyClient()
    reply = Reply(fragments=(Fragment(text="hi"),), mode=RouteMode.CHANNEL, channel_id="-100123")

    asyncio.run(TelegramReplier(client, reply_format="html").post(reply))

    _, _, kwargs = client.sent[0]
    assert kwargs["reply_to"] is None
    assert kwargs["parse_mode"] == "html"


def test_direct_message_goes_to_the_sender() -> None:
    client = DummyClient()
    reply = Reply(
        fragments=(Fragment(text="hi"),),
        mode=RouteMode.DIRECT_MESSAGE,
        channel_id="-100123",
        user_id="42",
    )

    asyncio.run(TelegramReplier(client).post(reply))

    assert client.sent[0][0] == 42


def test_thread_reader_returns_root_then_replies_oldest_first() -> None:
    client = DummyClient(
        root=DummyText("root"),
        replies=[DummyText("newest"), DummyText(""), DummyText("older")],
    )
    texts = asyncio.run(TelegramThreadReader(client).fetch_thread("-100123", "7"))
    assert texts == ["root", "older", "newest"]
