from __future__ import annotations

import asyncio
import logging
from typing import Optional

from core.config import DispatchConfig
from core.dispatcher import Dispatcher, check_examples, explain, first_interested, mentions_bot, route_reply
from core.errors import CallbackFault
from core.models import Fragment, InboundMessage, Reply, RouteMode
from core.rules import RuleDescriptor, RuleRegistry

BOT = "@switchboard_bot"


class FakeReplier:
    def __init__(self, fail: bool = False) -> None:
        self.posted: list[Reply] = []
        self._fail = fail

    async def post(self, reply: Reply) -> None:
        if self._fail:
            raise RuntimeError("transport down")
        self.posted.append(reply)


class Recorder:
    """Callback that records its calls and answers with a fixed fragment."""

    def __init__(self, answer: str = "ok", error: Optional[Exception] = None) -> None:
        self.calls: list[list[str]] = []
        self._answer = answer
        self._error = error

    async def __call__(self, context, message, args) -> list[Fragment]:
        self.calls.append(list(args))
        if self._error is not None:
            raise self._error
        if not self._answer:
            return []
        return [Fragment(text=self._answer)]


def _message(
    text: str,
    *,
    sender_id: str = "U1",
    thread_timestamp: Optional[str] = None,
    is_bot_message: bool = False,
    is_mention_event: bool = False,
) -> InboundMessage:
    return InboundMessage(
        channel_id="C1",
        sender_id=sender_id,
        text=text,
        timestamp="100",
        thread_timestamp=thread_timestamp,
        is_bot_message=is_bot_message,
        is_mention_event=is_mention_event,
    )


def _dispatcher(
    *rules: RuleDescriptor,
    allowed_users: frozenset = frozenset(),
    replier: Optional[FakeReplier] = None,
) -> tuple[Dispatcher, FakeReplier]:
    registry = RuleRegistry()
    for rule in rules:
        registry.register(rule)
    replier = replier or FakeReplier()
    config = DispatchConfig(allowed_users=allowed_users, bot_mention=BOT)
    return Dispatcher(registry=registry, replier=replier, config=config), replier


def test_first_registered_match_wins() -> None:
    first, second = Recorder("first"), Recorder("second")
    dispatcher, replier = _dispatcher(
        RuleDescriptor(name="a", callback=first, trigger_tokens=("deploy",)),
        RuleDescriptor(name="b", callback=second, trigger_tokens=("deploy",)),
    )

    reply = asyncio.run(dispatcher.handle(_message("deploy now")))

    assert reply is not None
    assert first.calls == [["now"]]
    assert second.calls == []
    assert replier.posted == [reply]
    assert reply.fragments[0].text == "first"


def test_bot_messages_are_ignored() -> None:
    recorder = Recorder()
    dispatcher, replier = _dispatcher(RuleDescriptor(name="a", callback=recorder))

    assert asyncio.run(dispatcher.handle(_message("anything", is_bot_message=True))) is None
    assert recorder.calls == []
    assert replier.posted == []


def test_unrelated_chatter_is_silently_ignored() -> None:
    dispatcher, replier = _dispatcher(RuleDescriptor(name="a", callback=Recorder(), trigger_tokens=("help",)))
    assert asyncio.run(dispatcher.handle(_message("good morning"))) is None
    assert replier.posted == []


def test_mention_is_required_and_stripped() -> None:
    recorder = Recorder()
    rule = RuleDescriptor(name="help", callback=recorder, trigger_tokens=("help",), require_mention=True)
    dispatcher, _ = _dispatcher(rule)

    assert asyncio.run(dispatcher.handle(_message("help"))) is None
    assert recorder.calls == []

    assert asyncio.run(dispatcher.handle(_message(f"{BOT} help"))) is not None
    assert recorder.calls == [[]]


def test_mentions_bot_matches_whole_handles_only() -> None:
    assert mentions_bot(f"{BOT} help", BOT)
    assert mentions_bot("hey @Switchboard_Bot, help", BOT)
    assert mentions_bot(f"thanks {BOT}.", BOT)
    assert not mentions_bot("@switchboard_bot2 help", BOT)
    assert not mentions_bot("mail foo@switchboard_bot.com", BOT)
    assert not mentions_bot("help", "")


def test_similar_handle_does_not_satisfy_mention_requirement() -> None:
    recorder = Recorder()
    rule = RuleDescriptor(name="help", callback=recorder, trigger_tokens=("help",), require_mention=True)
    dispatcher, replier = _dispatcher(rule)

    assert asyncio.run(dispatcher.handle(_message("help @switchboard_bot2"))) is None
    assert recorder.calls == []
    assert replier.posted == []


def test_mention_with_trailing_punctuation_is_stripped() -> None:
    recorder = Recorder()
    rule = RuleDescriptor(name="help", callback=recorder, trigger_tokens=("help",), require_mention=True)
    dispatcher, _ = _dispatcher(rule)

    asyncio.run(dispatcher.handle(_message(f"{BOT}, help")))
    assert recorder.calls == [[]]


def test_direct_mention_event_satisfies_mention_requirement() -> None:
    recorder = Recorder()
    rule = RuleDescriptor(name="help", callback=recorder, trigger_tokens=("help",), require_mention=True)
    dispatcher, _ = _dispatcher(rule)

    assert asyncio.run(dispatcher.handle(_message("help", is_mention_event=True))) is not None


def test_too_few_arguments_reply_with_usage() -> None:
    recorder = Recorder()
    rule = RuleDescriptor(
        name="pair",
        callback=recorder,
        trigger_tokens=("pair",),
        required_args=2,
        max_args=2,
        help_markdown="`pair a b`",
    )
    dispatcher, replier = _dispatcher(rule)

    reply = asyncio.run(dispatcher.handle(_message("pair a")))

    assert recorder.calls == []
    assert reply is not None
    assert "command requires 2 arguments" in reply.fragments[0].text
    assert "`pair a b`" in reply.fragments[0].text
    assert replier.posted == [reply]


def test_too_many_arguments_reply_suggests_quotes() -> None:
    recorder = Recorder()
    rule = RuleDescriptor(name="pair", callback=recorder, trigger_tokens=("pair",), required_args=2, max_args=2)
    dispatcher, _ = _dispatcher(rule)

    reply = asyncio.run(dispatcher.handle(_message("pair a b c")))
    assert recorder.calls == []
    assert "wrap that argument in quotes" in reply.fragments[0].text

    reply = asyncio.run(dispatcher.handle(_message('pair a "b c"')))
    assert recorder.calls == [["a", "b c"]]


def test_allow_list_rejects_unknown_sender(caplog) -> None:
    restricted, fallback = Recorder("restricted"), Recorder("fallback")
    dispatcher, replier = _dispatcher(
        RuleDescriptor(name="restricted", callback=restricted, trigger_tokens=("deploy",)),
        RuleDescriptor(name="fallback", callback=fallback, restrict_to_known_users=False),
        allowed_users=frozenset({"U1"}),
    )

    with caplog.at_level(logging.WARNING):
        reply = asyncio.run(dispatcher.handle(_message("deploy", sender_id="U2")))

    assert reply is None
    assert restricted.calls == []
    assert fallback.calls == []
    assert replier.posted == []
    assert "user not allowed: U2" in caplog.text


def test_allow_list_permits_known_sender_and_open_rules() -> None:
    restricted = Recorder()
    open_rule = Recorder()
    dispatcher, _ = _dispatcher(
        RuleDescriptor(name="restricted", callback=restricted, trigger_tokens=("deploy",)),
        RuleDescriptor(name="open", callback=open_rule, trigger_tokens=("help",), restrict_to_known_users=False),
        allowed_users=frozenset({"U1"}),
    )

    asyncio.run(dispatcher.handle(_message("deploy", sender_id="U1")))
    asyncio.run(dispatcher.handle(_message("help", sender_id="U2")))

    assert restricted.calls == [[]]
    assert open_rule.calls == [[]]


def test_empty_allow_list_means_no_restriction() -> None:
    recorder = Recorder()
    dispatcher, _ = _dispatcher(RuleDescriptor(name="a", callback=recorder, trigger_tokens=("deploy",)))
    asyncio.run(dispatcher.handle(_message("deploy", sender_id="anyone")))
    assert recorder.calls == [[]]


def test_thread_only_rules_skip_top_level_messages() -> None:
    threaded, fallback = Recorder("threaded"), Recorder("fallback")
    dispatcher, _ = _dispatcher(
        RuleDescriptor(name="summary", callback=threaded, trigger_tokens=("summary",), must_be_in_thread=True),
        RuleDescriptor(name="fallback", callback=fallback, trigger_tokens=("summary",)),
    )

    reply = asyncio.run(dispatcher.handle(_message("summary")))
    assert reply.fragments[0].text == "fallback"

    reply = asyncio.run(dispatcher.handle(_message("summary", thread_timestamp="50")))
    assert reply.fragments[0].text == "threaded"


def test_callback_error_ends_processing_without_fallthrough(caplog) -> None:
    failing, fallback = Recorder(error=CallbackFault("tracker down")), Recorder("fallback")
    dispatcher, replier = _dispatcher(
        RuleDescriptor(name="failing", callback=failing, trigger_tokens=("deploy",)),
        RuleDescriptor(name="fallback", callback=fallback),
    )

    with caplog.at_level(logging.ERROR):
        reply = asyncio.run(dispatcher.handle(_message("deploy")))

    assert reply is None
    assert failing.calls == [[]]
    assert fallback.calls == []
    assert replier.posted == []
    assert "tracker down" in caplog.text


def test_empty_reply_falls_through_to_next_rule() -> None:
    silent, fallback = Recorder(answer=""), Recorder("fallback")
    dispatcher, _ = _dispatcher(
        RuleDescriptor(name="silent", callback=silent),
        RuleDescriptor(name="fallback", callback=fallback),
    )

    reply = asyncio.run(dispatcher.handle(_message("hello")))
    assert silent.calls == [["hello"]]
    assert reply.fragments[0].text == "fallback"


def test_post_failure_is_logged_not_raised(caplog) -> None:
    dispatcher, _ = _dispatcher(
        RuleDescriptor(name="a", callback=Recorder()),
        replier=FakeReplier(fail=True),
    )
    with caplog.at_level(logging.ERROR):
        reply = asyncio.run(dispatcher.handle(_message("hello")))
    assert reply is not None
    assert "failed responding to message" in caplog.text


def test_route_reply_modes() -> None:
    top_level = _message("x")
    threaded = _message("x", thread_timestamp="50")

    in_place = RuleDescriptor(name="a", callback=Recorder())
    assert route_reply(in_place, top_level, []).anchor == "100"

    thread = RuleDescriptor(name="a", callback=Recorder(), respond_in_thread=True)
    assert route_reply(thread, top_level, []).anchor == "100"
    assert route_reply(thread, threaded, []).anchor == "50"

    channel = RuleDescriptor(name="a", callback=Recorder(), respond_in_channel=True)
    assert route_reply(channel, top_level, []).anchor is None
    assert route_reply(channel, threaded, []).anchor == "50"

    direct = RuleDescriptor(name="a", callback=Recorder(), respond_in_dm=True, respond_in_channel=True)
    reply = route_reply(direct, threaded, [])
    assert reply.mode is RouteMode.DIRECT_MESSAGE
    assert reply.user_id == "U1"
    assert reply.anchor is None


def test_explain_reports_every_rule_without_running_callbacks() -> None:
    recorder = Recorder()
    registry = RuleRegistry()
    registry.register(RuleDescriptor(name="help", callback=recorder, trigger_tokens=("help",), require_mention=True))
    registry.register(RuleDescriptor(name="deploy", callback=recorder, trigger_tokens=("deploy",)))

    verdicts = explain(registry, _message("deploy it"), BOT)

    assert [v.candidate for v in verdicts] == [False, True]
    assert first_interested(verdicts).rule.name == "deploy"
    assert recorder.calls == []


def test_check_examples_reports_failures() -> None:
    registry = RuleRegistry()
    registry.register(
        RuleDescriptor(
            name="deploy",
            callback=Recorder(),
            trigger_tokens=("deploy",),
            require_mention=True,
            should_match=("deploy now", "ship it"),
            should_not_match=("undeploy",),
        )
    )
    assert check_examples(registry, BOT) == ["deploy: should match 'ship it'"]
