"""Recursive AND/OR match trees over a normalized token set.

A node either runs its compiled expression, or combines its own literal tokens
and its children with a single combinator:

- literal tokens: AND needs all present, OR needs any present, none is
  vacuously true;
- children are only consulted when the literals held, and then AND needs
  every child while OR stops at the first satisfied child.

Evaluation never mutates the tree. It returns a ``MatchResult`` that mirrors
the evaluated part of the tree so traces can be dumped afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from core.errors import EvaluationFault, ExpressionError, IngestionFault
from core.expressions import CompiledExpression, compile_expression
from core.tokens import normalize_token, tokens_present_all, tokens_present_any

LOGGER = logging.getLogger(__name__)


class Combinator(str, Enum):
    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class MatchNode:
    """One node of a match tree."""

    combinator: Combinator = Combinator.AND
    literal_tokens: Tuple[str, ...] = ()
    children: Tuple["MatchNode", ...] = ()
    expression: Optional[CompiledExpression] = None

    def with_children(self, extra: Iterable["MatchNode"]) -> "MatchNode":
        return replace(self, children=self.children + tuple(extra))

    def with_expression(self, expression: Optional[CompiledExpression]) -> "MatchNode":
        return replace(self, expression=expression)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating one node, with the results of evaluated children."""

    node: MatchNode
    satisfied: bool
    depth: int = 0
    children: Tuple["MatchResult", ...] = field(default_factory=tuple)
    fault: Optional[str] = None

    def __bool__(self) -> bool:
        return self.satisfied


def evaluate(node: MatchNode, tokens: Mapping[str, str], depth: int = 0) -> MatchResult:
    """Decide whether ``tokens`` satisfy ``node``."""

    padding = "  " * depth
    if node.expression is not None:
        LOGGER.debug("%schecking tokens against expression: %s", padding, node.expression.source)
        try:
            satisfied = node.expression.run(tokens)
        except EvaluationFault as exc:
            LOGGER.warning("unable to run expression on match condition: %s", exc)
            return MatchResult(node=node, satisfied=False, depth=depth, fault=str(exc))
        return MatchResult(node=node, satisfied=satisfied, depth=depth)

    literal_result = True
    if node.literal_tokens:
        if node.combinator is Combinator.OR:
            literal_result = tokens_present_any(tokens, *node.literal_tokens)
        else:
            literal_result = tokens_present_all(tokens, *node.literal_tokens)
    LOGGER.debug(
        "%s%s literal tokens %s: %s",
        padding,
        node.combinator.value,
        ",".join(node.literal_tokens),
        literal_result,
    )

    satisfied = literal_result
    child_results: List[MatchResult] = []
    if literal_result and node.children:
        if node.combinator is Combinator.OR:
            satisfied = False
            for child in node.children:
                result = evaluate(child, tokens, depth + 1)
                child_results.append(result)
                if result.satisfied:
                    satisfied = True
                    break
        else:
            for child in node.children:
                result = evaluate(child, tokens, depth + 1)
                child_results.append(result)
                if not result.satisfied:
                    satisfied = False
                    break
        LOGGER.debug("%sterms satisfied: %s", padding, satisfied)

    return MatchResult(
        node=node,
        satisfied=satisfied,
        depth=depth,
        children=tuple(child_results),
    )


def is_match(node: MatchNode, tokens: Mapping[str, str]) -> bool:
    return evaluate(node, tokens).satisfied


def dump_match_tree(result: MatchResult) -> List[str]:
    """Render an evaluation trace as indented lines."""

    padding = " " * result.depth
    node = result.node
    lines = [f"{padding} Match: {str(result.satisfied).lower()}; Match Type: {node.combinator.value.upper()}"]
    if node.expression is not None:
        lines.append(f"{padding} Expression: {node.expression.source}")
        if result.fault:
            lines.append(f"{padding} Fault: {result.fault}")
        return lines
    lines.append(f"{padding} Immediate Tokens: {','.join(node.literal_tokens)}")
    if node.children:
        lines.append(
            f"{padding} Number of Descendant Terms(all terms must match in addition to tokens): "
            f"{len(node.children)}"
        )
        for child in result.children:
            lines.extend(dump_match_tree(child))
        skipped = len(node.children) - len(result.children)
        if skipped:
            lines.append(f"{padding} ({skipped} term(s) not evaluated)")
    return lines


def build_match_node(raw: Any, source: str = "<inline>") -> MatchNode:
    """Build a match tree from its declarative mapping form.

    Shape: ``{type: and|or, tokens: [...], terms: [...], expr: "..."}``.
    """

    if raw is None:
        return MatchNode()
    if not isinstance(raw, dict):
        raise IngestionFault(source, f"match condition must be a mapping, got {type(raw).__name__}")

    raw_type = str(raw.get("type") or Combinator.AND.value).strip().lower()
    try:
        combinator = Combinator(raw_type)
    except ValueError:
        raise IngestionFault(source, f"unknown match type {raw_type!r}") from None

    raw_tokens = raw.get("tokens") or []
    if isinstance(raw_tokens, str):
        raw_tokens = [raw_tokens]
    if not isinstance(raw_tokens, list):
        raise IngestionFault(source, "tokens must be a list")
    literal_tokens = tuple(
        token for token in (normalize_token(str(value)) for value in raw_tokens) if token
    )

    raw_terms = raw.get("terms") or []
    if not isinstance(raw_terms, list):
        raise IngestionFault(source, "terms must be a list")
    children = tuple(build_match_node(term, source) for term in raw_terms)

    expression = None
    raw_expr = raw.get("expr")
    if raw_expr:
        try:
            expression = compile_expression(str(raw_expr))
        except ExpressionError as exc:
            raise IngestionFault(source, str(exc)) from exc

    return MatchNode(
        combinator=combinator,
        literal_tokens=literal_tokens,
        children=children,
        expression=expression,
    )
