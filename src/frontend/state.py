"""State and rendering helpers for the rule tester."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from core.dispatcher import explain, mentions_bot, resolve
from core.match_tree import dump_match_tree
from core.models import InboundMessage
from core.rules import RuleRegistry


@dataclass
class TesterState:
    text: str = ""
    channel_name: str = ""
    mentioned: bool = True
    in_thread: bool = False
    sender_id: str = "tester"
    lines: List[str] = field(default_factory=list)


def tester_message(state: TesterState, bot_mention: str) -> InboundMessage:
    text = state.text
    if state.mentioned and bot_mention and not mentions_bot(text, bot_mention):
        text = f"{bot_mention} {text}"
    return InboundMessage(
        channel_id="tester",
        sender_id=state.sender_id,
        text=text,
        timestamp="1",
        thread_timestamp="1" if state.in_thread else None,
        is_mention_event=state.mentioned,
        channel_name=state.channel_name or None,
    )


def describe(
    registry: RuleRegistry,
    state: TesterState,
    bot_mention: str,
    allowed_users: frozenset = frozenset(),
) -> List[str]:
    """Explain which rule would handle the tester's message, and why.

    The allow-list, thread requirement and argument bounds are applied the
    way the dispatcher applies them; callbacks are not run.
    """

    message = tester_message(state, bot_mention)
    verdicts = explain(registry, message, bot_mention)
    resolution = resolve(verdicts, message, allowed_users)
    winner = resolution.verdict.rule.name if resolution.verdict else "(none)"
    lines = [f"winner: {winner} ({resolution.outcome})"]
    lines.extend(f"passed over: {name} ({reason})" for name, reason in resolution.passed_over)
    lines.append("")
    for verdict in verdicts:
        if not verdict.candidate:
            lines.append(f"- {verdict.rule.name}: skipped (needs a mention)")
            continue
        status = "interested" if verdict.interested else "not interested"
        lines.append(f"- {verdict.rule.name}: {status}; args={verdict.args}")
        if verdict.trace is not None:
            lines.extend(f"    {line}" for line in dump_match_tree(verdict.trace))
    state.lines = lines
    return lines
