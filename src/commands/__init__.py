"""Built-in command rules.

Registered before knowledge assets so explicit commands always win over
informational matches.
"""

from __future__ import annotations

from typing import List

from commands.help import HELP_RULE
from commands.jira import CREATE_RULE, UNSIZED_RULE
from commands.summarize import SUMMARY_RULE
from core.rules import RuleDescriptor, RuleRegistry


def builtin_rules() -> List[RuleDescriptor]:
    return [CREATE_RULE, UNSIZED_RULE, SUMMARY_RULE, HELP_RULE]


def register_builtin_commands(registry: RuleRegistry) -> int:
    rules = builtin_rules()
    for rule in rules:
        registry.register(rule)
    return len(rules)
