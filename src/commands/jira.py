"""Issue tracker commands: ``jira create`` and ``jira unsized``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from core.errors import CallbackFault
from core.models import Fragment, InboundMessage
from core.ports import CommandContext, IssueTrackerPort
from core.rules import RuleDescriptor

LOGGER = logging.getLogger(__name__)

ISSUE_TEMPLATE = """
*User Story:*
As an {principal} I want {goal} so {outcome}.

*Description:*
< Record any background information >

*Acceptance Criteria:*
< Record how we'll know we're done >

*Other Information:*
< Record anything else that may be helpful to someone else picking up the card >

issue created by switchboard
"""


@dataclass(frozen=True)
class StoryContext:
    principal: str = "Engineer"
    goal: str = "___"
    outcome: str = "___"


def render_description(story: StoryContext, thread_url: str = "") -> str:
    description = ISSUE_TEMPLATE.format(
        principal=story.principal,
        goal=story.goal,
        outcome=story.outcome,
    )
    if thread_url:
        description = f"{description}\n\ncreated from thread: {thread_url}"
    return description


def _tracker(context: CommandContext) -> IssueTrackerPort:
    if context.issue_tracker is None:
        raise CallbackFault("issue tracker is not configured")
    return context.issue_tracker


async def create_issue(context: CommandContext, message: InboundMessage, args: List[str]) -> List[Fragment]:
    """Create an issue: ``jira create "summary" ["goal"] ["outcome"]``."""

    tracker = _tracker(context)
    summary = args[0]
    story = StoryContext()
    if len(args) >= 3:
        story = StoryContext(goal=args[1], outcome=args[2])
    elif len(args) == 2:
        story = StoryContext(goal=args[1])

    thread_url = message.permalink if message.in_thread else ""
    description = render_description(story, thread_url or "")
    LOGGER.debug("creating issue in %s: %s", context.jira_project, summary)
    try:
        issue = await tracker.create_issue(context.jira_project, summary, description)
    except Exception as exc:
        raise CallbackFault(f"error creating issue: {exc}") from exc

    text = f"issue {issue.key} created"
    urls = (issue.url,) if issue.url else ()
    return [Fragment(text=text, urls=urls)]


async def list_unsized(context: CommandContext, message: InboundMessage, args: List[str]) -> List[Fragment]:
    """List stories without a size for a project: ``jira unsized PROJECT``."""

    tracker = _tracker(context)
    try:
        issues = await tracker.unsized_stories(args[0])
    except Exception as exc:
        raise CallbackFault(f"error querying issues: {exc}") from exc

    if not issues:
        return [Fragment(text="no issues found")]
    lines = [f"{issue.key} - {issue.summary}" for issue in issues]
    return [Fragment(text="\n".join(lines), markdown=False)]


CREATE_RULE = RuleDescriptor(
    name="jira-create",
    callback=create_issue,
    trigger_tokens=("jira", "create"),
    require_mention=True,
    required_args=1,
    max_args=3,
    help_markdown='create a Jira issue: `jira create "[summary]" ["goal"] ["outcome"]`',
    should_match=('jira create "fix the thing"',),
    should_not_match=("jira create-with-summary PROJECT bug",),
)

UNSIZED_RULE = RuleDescriptor(
    name="jira-unsized",
    callback=list_unsized,
    trigger_tokens=("jira", "unsized"),
    require_mention=True,
    required_args=1,
    max_args=1,
    help_markdown="outputs a list of unsized stories for import in to PlanIt Poker: `jira unsized [project]`",
    should_match=("jira unsized SPLAT",),
)
