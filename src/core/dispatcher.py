"""Message dispatch (core domain).

The dispatcher is integration-agnostic: it consumes an ``InboundMessage``,
walks a snapshot of the rule registry in registration order and runs the
callback of the first rule that is interested, permitted and correctly
invoked. Replies are handed to a ``ReplyPort``.

Per rule the order of checks is:
1) mention requirement
2) tokenize (rule's quoting policy) and drop the bot mention
3) interest strategy (trigger prefix or match tree)
4) allow-list
5) thread requirement
6) argument bounds, then the callback
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from core.config import DispatchConfig
from core.errors import PermissionDenied, UsageError
from core.knowledge import KnowledgeMatch
from core.match_tree import MatchResult
from core.models import Fragment, InboundMessage, Reply, RouteMode
from core.ports import CommandContext, ReplyPort
from core.rules import RuleDescriptor, RuleRegistry, check_argument_bounds
from core.tokens import normalize_token, tokenize

LOGGER = logging.getLogger(__name__)


def mentions_bot(text: str, bot_mention: str) -> bool:
    """True when ``bot_mention`` appears as a whole handle in ``text``.

    "@bot2" or "user@bot.com" do not address "@bot".
    """

    if not bot_mention:
        return False
    pattern = rf"(?<![\w@.]){re.escape(bot_mention)}(?![\w@]|\.\w)"
    return re.search(pattern, text, re.IGNORECASE) is not None


def strip_mention(args: Sequence[str], bot_mention: str) -> List[str]:
    mention = bot_mention.lower()
    return [arg for arg in args if normalize_token(arg) != mention]


def candidate_args(
    rule: RuleDescriptor,
    message: InboundMessage,
    bot_mention: str,
) -> Optional[List[str]]:
    """Return the tokens a rule sees, or None when the rule needs a mention it lacks."""

    mentioned = mentions_bot(message.text, bot_mention)
    if rule.require_mention and not mentioned and not message.is_mention_event:
        return None
    args = tokenize(message.text, rule.honor_quotes)
    if mentioned:
        args = strip_mention(args, bot_mention)
    return args


def ensure_allowed(rule: RuleDescriptor, message: InboundMessage, allowed_users: frozenset) -> None:
    if not rule.restrict_to_known_users or not allowed_users:
        return
    if message.sender_id not in allowed_users:
        raise PermissionDenied(message.sender_id)


def route_reply(rule: RuleDescriptor, message: InboundMessage, fragments: Sequence[Fragment]) -> Reply:
    """Attach the routing directive for ``rule`` to ``fragments``.

    Direct message beats channel reply, which beats threaded reply, which
    beats the default of answering the originating message in place.
    """

    mode = rule.route_mode
    if mode is RouteMode.DIRECT_MESSAGE:
        return Reply(
            fragments=tuple(fragments),
            mode=mode,
            channel_id=message.channel_id,
            user_id=message.sender_id,
        )
    if mode is RouteMode.CHANNEL:
        # Stay inside an existing thread, otherwise post at the top level.
        anchor = message.thread_timestamp if message.in_thread else None
    elif mode is RouteMode.THREAD:
        anchor = message.thread_timestamp or message.timestamp
    else:
        anchor = message.timestamp
    return Reply(fragments=tuple(fragments), mode=mode, channel_id=message.channel_id, anchor=anchor)


class Dispatcher:
    """Single-match, first-hit dispatch over the rule registry."""

    def __init__(
        self,
        registry: RuleRegistry,
        replier: ReplyPort,
        config: DispatchConfig,
        context: Optional[CommandContext] = None,
    ) -> None:
        self._registry = registry
        self._replier = replier
        self._config = config
        self._context = context or CommandContext(registry=registry, bot_mention=config.bot_mention)

    async def handle(self, message: InboundMessage) -> Optional[Reply]:
        """Process one message; return the reply that was posted, if any."""

        if message.is_bot_message:
            return None

        # Media-only messages without captions carry nothing to match on.
        if not message.text.strip():
            return None

        for rule in self._registry.snapshot():
            args = candidate_args(rule, message, self._config.bot_mention)
            if args is None:
                continue
            if not rule.interest.is_interested(args, rule, message):
                continue

            LOGGER.debug("rule %s is interested in message %s", rule.name, message.timestamp)
            try:
                ensure_allowed(rule, message, self._config.allowed_users)
            except PermissionDenied as exc:
                LOGGER.warning("rule %s denied: %s", rule.name, exc)
                return None

            if rule.must_be_in_thread and not message.in_thread:
                continue

            arguments = rule.arguments(args)
            try:
                check_argument_bounds(rule, arguments)
            except UsageError as exc:
                fragments: List[Fragment] = [Fragment(text=str(exc))]
            else:
                try:
                    fragments = list(await rule.callback(self._context, message, arguments) or [])
                except Exception:
                    LOGGER.exception("failed processing message %s with rule %s", message.timestamp, rule.name)
                    return None

            if not fragments:
                continue

            reply = route_reply(rule, message, fragments)
            LOGGER.info("responding to message %s with rule %s (%s)", message.timestamp, rule.name, reply.mode.value)
            try:
                await self._replier.post(reply)
            except Exception:
                LOGGER.exception("failed responding to message %s", message.timestamp)
            return reply

        return None


@dataclass(frozen=True)
class RuleVerdict:
    """What a single rule thinks of a message, without running its callback."""

    rule: RuleDescriptor
    args: Optional[List[str]]
    interested: bool
    trace: Optional[MatchResult] = None

    @property
    def candidate(self) -> bool:
        return self.args is not None


def explain(registry: RuleRegistry, message: InboundMessage, bot_mention: str = "") -> List[RuleVerdict]:
    """Return one verdict per registered rule, in dispatch order."""

    verdicts: List[RuleVerdict] = []
    for rule in registry.snapshot():
        args = candidate_args(rule, message, bot_mention)
        if args is None:
            verdicts.append(RuleVerdict(rule=rule, args=None, interested=False))
            continue
        trace = None
        if isinstance(rule.interest, KnowledgeMatch):
            trace = rule.interest.trace(args, message)
            interested = trace is not None and trace.satisfied
        else:
            interested = rule.interest.is_interested(args, rule, message)
        verdicts.append(RuleVerdict(rule=rule, args=args, interested=interested, trace=trace))
    return verdicts


def first_interested(verdicts: Sequence[RuleVerdict]) -> Optional[RuleVerdict]:
    for verdict in verdicts:
        if verdict.interested:
            return verdict
    return None


@dataclass(frozen=True)
class Resolution:
    """Which rule dispatch would settle on, and how it would end."""

    verdict: Optional[RuleVerdict]
    outcome: str
    # Rules passed over after they were interested, with the reason.
    passed_over: Tuple[Tuple[str, str], ...] = ()


def resolve(
    verdicts: Sequence[RuleVerdict],
    message: InboundMessage,
    allowed_users: frozenset = frozenset(),
) -> Resolution:
    """Apply the dispatcher's gates to ``verdicts`` without running callbacks.

    Outcomes: "callback", "usage reply", "denied" or "no rule". A callback
    that returns nothing would fall through to later rules; that cannot be
    known without running it.
    """

    passed_over: List[Tuple[str, str]] = []
    for verdict in verdicts:
        if not verdict.interested:
            continue
        rule = verdict.rule
        try:
            ensure_allowed(rule, message, allowed_users)
        except PermissionDenied:
            return Resolution(verdict, "denied", tuple(passed_over))
        if rule.must_be_in_thread and not message.in_thread:
            passed_over.append((rule.name, "needs a thread"))
            continue
        try:
            check_argument_bounds(rule, rule.arguments(verdict.args or []))
        except UsageError:
            return Resolution(verdict, "usage reply", tuple(passed_over))
        return Resolution(verdict, "callback", tuple(passed_over))
    return Resolution(None, "no rule", tuple(passed_over))


def _example_message(rule: RuleDescriptor, text: str, bot_mention: str) -> InboundMessage:
    channel_name = None
    if isinstance(rule.interest, KnowledgeMatch):
        asset = rule.interest.asset
        if asset.require_in_channel:
            channel_name = asset.require_in_channel[0]
    if rule.require_mention and bot_mention:
        text = f"{bot_mention} {text}"
    return InboundMessage(
        channel_id="example",
        sender_id="example",
        text=text,
        timestamp="0",
        is_mention_event=True,
        channel_name=channel_name,
    )


def check_examples(registry: RuleRegistry, bot_mention: str = "") -> List[str]:
    """Run each rule's example utterances; return a line per failed example."""

    failures: List[str] = []
    for rule in registry.snapshot():
        for text, expected in [(t, True) for t in rule.should_match] + [(t, False) for t in rule.should_not_match]:
            message = _example_message(rule, text, bot_mention)
            args = candidate_args(rule, message, bot_mention)
            interested = args is not None and rule.interest.is_interested(args, rule, message)
            if interested != expected:
                verb = "should match" if expected else "should not match"
                failures.append(f"{rule.name}: {verb} {text!r}")
    return failures
