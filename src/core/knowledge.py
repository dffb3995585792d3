"""Knowledge assets: declarative rules that answer informational questions.

An asset is parsed from a mapping (the loader adapter reads the files), turned
into a ``RuleDescriptor`` whose interest strategy evaluates the asset's match
tree, and answered with a fixed prompt plus optional links.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from core.errors import ExpressionError, IngestionFault
from core.expressions import compile_expression
from core.match_tree import MatchNode, MatchResult, build_match_node, evaluate
from core.models import Fragment, InboundMessage
from core.platforms import path_context_expression, path_context_terms, path_context_tokens
from core.rules import RuleDescriptor
from core.tokens import normalize_tokens

LOGGER = logging.getLogger(__name__)

DEFAULT_URL_PROMPT = "This may be a topic that I can help with.\n\n{prompt}"

_MISSING = object()


def channel_key(name: Optional[str]) -> str:
    """Normalize a channel name for comparisons ("#Platform-AWS" -> "platform-aws")."""

    return (name or "").strip().lstrip("#@").lower()


@dataclass(frozen=True)
class ChannelContext:
    """Channels that imply extra tokens, and the path that names them."""

    channels: Tuple[str, ...]
    context_path: str


@dataclass(frozen=True)
class KnowledgeAsset:
    name: str
    on: MatchNode
    markdown_prompt: str = ""
    urls: Tuple[str, ...] = ()
    channel_context: Optional[ChannelContext] = None
    require_in_channel: Tuple[str, ...] = ()
    watch_threads: bool = False
    priority: int = 0
    source: str = ""
    should_match: Tuple[str, ...] = ()
    should_not_match: Tuple[str, ...] = ()


@dataclass(frozen=True)
class KnowledgeMatch:
    """Interest strategy that evaluates a knowledge asset's match tree."""

    asset: KnowledgeAsset

    def candidate_tokens(self, args: Sequence[str], message: InboundMessage) -> List[str]:
        tokens = list(args)
        context = self.asset.channel_context
        if context is not None and channel_key(message.channel_name) in context.channels:
            tokens.extend(path_context_tokens(context.context_path))
        return tokens

    def trace(self, args: Sequence[str], message: InboundMessage) -> Optional[MatchResult]:
        """Evaluate the asset for ``message``; None when the asset does not apply."""

        asset = self.asset
        if not asset.watch_threads and message.in_thread:
            return None
        if asset.require_in_channel and channel_key(message.channel_name) not in asset.require_in_channel:
            return None
        tokens = normalize_tokens(self.candidate_tokens(args, message))
        return evaluate(asset.on, tokens)

    def is_interested(
        self,
        args: Sequence[str],
        rule: RuleDescriptor,
        message: InboundMessage,
    ) -> bool:
        result = self.trace(args, message)
        return result is not None and result.satisfied


def knowledge_fragments(asset: KnowledgeAsset) -> List[Fragment]:
    text = DEFAULT_URL_PROMPT.format(prompt=asset.markdown_prompt).rstrip()
    return [Fragment(text=text, markdown=True, urls=asset.urls)]


async def _answer(asset: KnowledgeAsset, context, message: InboundMessage, args: List[str]) -> List[Fragment]:
    LOGGER.info("knowledge asset %s matched message %s", asset.name, message.timestamp)
    return knowledge_fragments(asset)


def knowledge_rule(asset: KnowledgeAsset) -> RuleDescriptor:
    """Wrap an asset as a registry entry.

    Knowledge rules never require a mention, do not glob quotes, and are open
    to every user.
    """

    return RuleDescriptor(
        name=f"knowledge:{asset.name}",
        callback=functools.partial(_answer, asset),
        interest=KnowledgeMatch(asset),
        honor_quotes=False,
        restrict_to_known_users=False,
        should_match=asset.should_match,
        should_not_match=asset.should_not_match,
    )


def _string_list(raw: Any, source: str, field_name: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if not isinstance(raw, list):
        raise IngestionFault(source, f"{field_name} must be a list")
    return tuple(str(item) for item in raw)


def parse_asset(raw: Any, source: str, relative_path: str = "") -> KnowledgeAsset:
    """Build an asset from a parsed rule file.

    ``relative_path`` is the file path below the knowledge root; platform
    names among its directories add required context terms.
    """

    if not isinstance(raw, dict):
        raise IngestionFault(source, "rule file must contain a mapping")
    name = raw.get("name")
    if not name:
        raise IngestionFault(source, "name is required")
    # YAML 1.1 loaders read a bare ``on`` key as boolean True.
    raw_on = raw["on"] if "on" in raw else raw.get(True, _MISSING)
    if raw_on is _MISSING:
        raise IngestionFault(source, "on is required")

    urls = _string_list(raw.get("urls"), source, "urls")
    markdown_prompt = str(raw.get("markdown_prompt") or raw.get("markdownPrompt") or "")
    if not markdown_prompt and not urls:
        raise IngestionFault(source, "markdown_prompt or urls is required")

    on = build_match_node(raw_on, source)
    context_terms = path_context_terms(relative_path)
    if context_terms:
        on = on.with_children(context_terms)
    if on.expression is not None:
        platform_expr = path_context_expression(relative_path)
        if platform_expr:
            try:
                on = on.with_expression(
                    compile_expression(f"{platform_expr} and ({on.expression.source})")
                )
            except ExpressionError as exc:
                raise IngestionFault(source, str(exc)) from exc

    channel_context = None
    raw_context = raw.get("channel_context") or raw.get("channelContext")
    if raw_context:
        if not isinstance(raw_context, dict):
            raise IngestionFault(source, "channel_context must be a mapping")
        channels = _string_list(raw_context.get("channels"), source, "channel_context.channels")
        context_path = str(raw_context.get("context_path") or raw_context.get("contextPath") or "")
        channel_context = ChannelContext(
            channels=tuple(channel_key(channel) for channel in channels),
            context_path=context_path,
        )

    require_in_channel = _string_list(
        raw.get("require_in_channel", raw.get("requireInChannel")), source, "require_in_channel"
    )

    try:
        priority = int(raw.get("priority") or 0)
    except (TypeError, ValueError):
        raise IngestionFault(source, "priority must be an integer") from None

    return KnowledgeAsset(
        name=str(name),
        on=on,
        markdown_prompt=markdown_prompt,
        urls=urls,
        channel_context=channel_context,
        require_in_channel=tuple(channel_key(channel) for channel in require_in_channel),
        watch_threads=bool(raw.get("watch_threads", raw.get("watchThreads", False))),
        priority=priority,
        source=source,
        should_match=_string_list(raw.get("should_match"), source, "should_match"),
        should_not_match=_string_list(raw.get("should_not_match"), source, "should_not_match"),
    )
