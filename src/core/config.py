"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Tuple


@dataclass(frozen=True)
class DispatchConfig:
    """Dispatcher settings."""

    # Empty means no restriction.
    allowed_users: FrozenSet[str] = field(default_factory=frozenset)
    # Token that addresses the bot, e.g. "@switchboard_bot".
    bot_mention: str = ""


@dataclass(frozen=True)
class KnowledgeConfig:
    """Where declarative knowledge rules live."""

    root: str
    extensions: Tuple[str, ...] = (".yaml", ".yml")


def parse_id_list(raw: str) -> FrozenSet[str]:
    """Parse a comma-separated identifier list, ignoring blanks."""

    if not raw:
        return frozenset()
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
