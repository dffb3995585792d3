"""Ports (interfaces) used by the core and by command callbacks.

Ports define the minimal contracts for transport and collaborator adapters so
that the core can be reused with different backends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

from core.models import Reply
from core.rules import RuleRegistry


@dataclass(frozen=True)
class Issue:
    key: str
    summary: str
    url: str = ""


class ReplyPort(Protocol):
    """Delivers a routed reply through the chat transport."""

    async def post(self, reply: Reply) -> None:
        ...


class ThreadReaderPort(Protocol):
    """Reads the text of every message in a thread, oldest first."""

    async def fetch_thread(self, channel_id: str, thread_timestamp: str) -> List[str]:
        ...


class IssueTrackerPort(Protocol):
    """Issue tracker operations used by the jira commands."""

    async def create_issue(self, project: str, summary: str, description: str) -> Issue:
        ...

    async def unsized_stories(self, project: str) -> List[Issue]:
        ...


class LanguageModelPort(Protocol):
    """Single-prompt completion."""

    async def complete(self, prompt: str) -> str:
        ...


@dataclass(frozen=True)
class CommandContext:
    """Collaborators handed to every rule callback."""

    registry: RuleRegistry
    bot_mention: str = ""
    issue_tracker: Optional[IssueTrackerPort] = None
    language_model: Optional[LanguageModelPort] = None
    thread_reader: Optional[ThreadReaderPort] = None
    jira_project: str = ""
