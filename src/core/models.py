"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any transport-specific types. Identifiers are strings so the core
does not care whether the transport uses numeric or opaque ids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message context used by the dispatcher."""

    channel_id: str
    sender_id: str
    text: str
    timestamp: str
    thread_timestamp: Optional[str] = None
    is_bot_message: bool = False
    # Direct top-level mention events (e.g. a private chat with the bot).
    is_mention_event: bool = False
    channel_name: Optional[str] = None
    permalink: Optional[str] = None

    @property
    def in_thread(self) -> bool:
        return bool(self.thread_timestamp)


@dataclass(frozen=True)
class Fragment:
    """A single piece of outbound content."""

    text: str
    markdown: bool = True
    urls: Tuple[str, ...] = field(default_factory=tuple)


class RouteMode(str, Enum):
    """Where a reply goes, from highest to lowest precedence."""

    DIRECT_MESSAGE = "direct_message"
    CHANNEL = "channel"
    THREAD = "thread"
    IN_PLACE = "in_place"


@dataclass(frozen=True)
class Reply:
    """Outbound reply plus the routing directive for the transport."""

    fragments: Tuple[Fragment, ...]
    mode: RouteMode
    channel_id: str
    # Message the reply is anchored to; None posts at channel top level.
    anchor: Optional[str] = None
    # Recipient for direct messages.
    user_id: Optional[str] = None
