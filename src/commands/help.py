"""``help``: list what the registered rules can do."""

from __future__ import annotations

from typing import List

from core.models import Fragment, InboundMessage
from core.ports import CommandContext
from core.rules import RuleDescriptor


async def show_help(context: CommandContext, message: InboundMessage, args: List[str]) -> List[Fragment]:
    lines = [
        f"- {rule.help_markdown}"
        for rule in context.registry.snapshot()
        if rule.help_markdown
    ]
    if not lines:
        return [Fragment(text="no commands are registered")]
    return [Fragment(text="I can help with:\n" + "\n".join(lines))]


HELP_RULE = RuleDescriptor(
    name="help",
    callback=show_help,
    trigger_tokens=("help",),
    require_mention=True,
    restrict_to_known_users=False,
    help_markdown="list available commands: `help`",
)
