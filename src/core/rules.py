"""Rule descriptors and the ordered rule registry (core domain).

Commands and knowledge assets share one descriptor shape. Registration order
is the only tie-break during dispatch: the first satisfied rule wins, so more
specific rules must be registered before catch-alls.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, List, Protocol, Sequence, Tuple

from core.errors import UsageError
from core.models import Fragment, InboundMessage, RouteMode

if TYPE_CHECKING:
    from core.ports import CommandContext

LOGGER = logging.getLogger(__name__)

Callback = Callable[["CommandContext", InboundMessage, List[str]], Awaitable[List[Fragment]]]


class InterestStrategy(Protocol):
    """Decides whether a tokenized message is a candidate for a rule."""

    def is_interested(
        self,
        args: Sequence[str],
        rule: "RuleDescriptor",
        message: InboundMessage,
    ) -> bool:
        ...


def prefix_matches(args: Sequence[str], trigger_tokens: Sequence[str]) -> bool:
    """Compare the leading tokens with the trigger position by position.

    A message shorter than the trigger fails closed.
    """

    if len(args) < len(trigger_tokens):
        return False
    for index, command in enumerate(trigger_tokens):
        if command != args[index]:
            return False
    return True


@dataclass(frozen=True)
class LiteralPrefix:
    """Default strategy: the message starts with the rule's trigger tokens."""

    def is_interested(
        self,
        args: Sequence[str],
        rule: "RuleDescriptor",
        message: InboundMessage,
    ) -> bool:
        return prefix_matches(args, rule.trigger_tokens)


@dataclass(frozen=True)
class RuleDescriptor:
    """A registered unit combining a trigger, constraints, and a callback."""

    name: str
    callback: Callback
    trigger_tokens: Tuple[str, ...] = ()
    interest: InterestStrategy = field(default_factory=LiteralPrefix)
    require_mention: bool = False
    # Bounds on the number of tokens left after mention and trigger stripping.
    # max_args == 0 means unbounded.
    required_args: int = 0
    max_args: int = 0
    honor_quotes: bool = True
    restrict_to_known_users: bool = True
    must_be_in_thread: bool = False
    respond_in_thread: bool = False
    respond_in_channel: bool = False
    respond_in_dm: bool = False
    help_markdown: str = ""
    should_match: Tuple[str, ...] = ()
    should_not_match: Tuple[str, ...] = ()

    @property
    def route_mode(self) -> RouteMode:
        if self.respond_in_dm:
            return RouteMode.DIRECT_MESSAGE
        if self.respond_in_channel:
            return RouteMode.CHANNEL
        if self.respond_in_thread:
            return RouteMode.THREAD
        return RouteMode.IN_PLACE

    def arguments(self, args: Sequence[str]) -> List[str]:
        """Strip the trigger tokens from an already prefix-matched token list."""

        return list(args[len(self.trigger_tokens):])


def check_argument_bounds(rule: RuleDescriptor, arguments: Sequence[str]) -> None:
    """Raise UsageError when the argument count is outside the rule's bounds."""

    if len(arguments) < rule.required_args:
        raise UsageError(
            f"command requires {rule.required_args} arguments.\n{rule.help_markdown}\n"
        )
    if rule.max_args > 0 and len(arguments) > rule.max_args:
        raise UsageError(
            f"command accepts at most {rule.max_args} arguments. if an argument is greater "
            f"than one word, be sure to wrap that argument in quotes.\n{rule.help_markdown}\n"
        )


class RuleRegistry:
    """Append-only, lock-guarded ordered list of rule descriptors."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rules: List[RuleDescriptor] = []

    def register(self, rule: RuleDescriptor) -> None:
        with self._lock:
            LOGGER.debug("adding rule: %s %s", rule.name, list(rule.trigger_tokens))
            self._rules.append(rule)

    def snapshot(self) -> List[RuleDescriptor]:
        """Return a copy so dispatch never iterates while a writer appends."""

        with self._lock:
            return list(self._rules)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)
