"""Thread summary command backed by a language model."""

from __future__ import annotations

import logging
from typing import List

from core.dispatcher import mentions_bot
from core.errors import CallbackFault
from core.models import Fragment, InboundMessage
from core.ports import CommandContext
from core.rules import RuleDescriptor

LOGGER = logging.getLogger(__name__)

PROMPT_THREAD_SUMMARY = "can you summarize this thread a short paragraph?"


def build_prompt(prompt: str, thread: List[str], bot_mention: str) -> str:
    lines = [prompt]
    # Requests addressed to the bot are noise for the summary.
    lines.extend(text for text in thread if not mentions_bot(text, bot_mention))
    return "\n".join(lines) + "\n"


async def summarize_thread(context: CommandContext, message: InboundMessage, args: List[str]) -> List[Fragment]:
    if context.language_model is None or context.thread_reader is None:
        raise CallbackFault("summaries need a language model and a thread reader")

    try:
        thread = await context.thread_reader.fetch_thread(message.channel_id, message.thread_timestamp or "")
    except Exception as exc:
        raise CallbackFault(f"failed to get thread messages: {exc}") from exc

    prompt = build_prompt(PROMPT_THREAD_SUMMARY, thread, context.bot_mention)
    LOGGER.debug("summarizing %s messages from %s/%s", len(thread), message.channel_id, message.thread_timestamp)
    try:
        completion = await context.language_model.complete(prompt)
    except Exception as exc:
        raise CallbackFault(f"unable to get summary: {exc}") from exc

    return [Fragment(text=f"will summarize thread: {completion.strip()}")]


SUMMARY_RULE = RuleDescriptor(
    name="summary",
    callback=summarize_thread,
    trigger_tokens=("summary",),
    require_mention=True,
    must_be_in_thread=True,
    respond_in_thread=True,
    help_markdown="summarize this thread: `summary`",
)
