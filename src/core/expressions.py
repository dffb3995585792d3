"""Sealed boolean expressions over a normalized token set.

Expressions are parsed with the standard ``ast`` module and interpreted by
walking a whitelisted subset of the tree. Nothing is ever passed to ``eval``;
the only binding is ``tokens`` and the only callables are ``containsAny`` and
``containsAll``.

Example::

    containsAny(tokens, ["install", "upgrade"]) and not "quota" in tokens
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping

from core.errors import EvaluationFault, ExpressionError
from core.tokens import normalize_token

_ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.Not,
    ast.Compare,
    ast.In,
    ast.NotIn,
    ast.Eq,
    ast.NotEq,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.List,
    ast.Tuple,
)

TOKENS_NAME = "tokens"


def _keys(values: Any) -> list[str]:
    if not isinstance(values, (list, tuple)):
        raise EvaluationFault(f"expected a list of tokens, got {type(values).__name__}")
    return [normalize_token(str(value)) for value in values]


def _token_map(value: Any) -> Mapping[str, str]:
    if not isinstance(value, Mapping):
        raise EvaluationFault(f"expected the token set, got {type(value).__name__}")
    return value


def contains_any(tokens: Any, values: Any) -> bool:
    token_map = _token_map(tokens)
    return any(key in token_map for key in _keys(values))


def contains_all(tokens: Any, values: Any) -> bool:
    token_map = _token_map(tokens)
    keys = _keys(values)
    return bool(keys) and all(key in token_map for key in keys)


FUNCTIONS: Dict[str, Callable[..., bool]] = {
    "containsAny": contains_any,
    "containsAll": contains_all,
}


@dataclass(frozen=True)
class CompiledExpression:
    """A validated expression ready to run against a token set."""

    source: str
    tree: ast.Expression

    def run(self, tokens: Mapping[str, str]) -> bool:
        """Evaluate against ``tokens``; raise EvaluationFault on any failure."""

        try:
            result = _Interpreter(tokens).visit(self.tree.body)
        except EvaluationFault:
            raise
        except Exception as exc:
            raise EvaluationFault(f"{self.source!r}: {exc}") from exc
        if not isinstance(result, bool):
            raise EvaluationFault(
                f"{self.source!r} returned {type(result).__name__}, expected bool"
            )
        return result


def compile_expression(source: str) -> CompiledExpression:
    """Parse and validate expression text."""

    text = (source or "").strip()
    if not text:
        raise ExpressionError("expression is empty")
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"invalid expression {text!r}: {exc.msg}") from exc

    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionError(
                f"unsupported construct {type(node).__name__} in {text!r}"
            )
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
                raise ExpressionError(f"unknown function in {text!r}")
            if node.keywords:
                raise ExpressionError(f"keyword arguments are not supported in {text!r}")
        elif isinstance(node, ast.Name):
            if node.id not in FUNCTIONS and node.id != TOKENS_NAME:
                raise ExpressionError(f"unknown name {node.id!r} in {text!r}")
    return CompiledExpression(source=text, tree=tree)


class _Interpreter(ast.NodeVisitor):
    def __init__(self, tokens: Mapping[str, str]) -> None:
        self._tokens = tokens

    def generic_visit(self, node: ast.AST) -> Any:
        raise EvaluationFault(f"unsupported construct {type(node).__name__}")

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        return not self.visit(node.operand)

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if isinstance(op, (ast.In, ast.NotIn)) and isinstance(left, str):
                left = normalize_token(left)
            if isinstance(op, ast.In):
                ok = left in right
            elif isinstance(op, ast.NotIn):
                ok = left not in right
            elif isinstance(op, ast.Eq):
                ok = left == right
            else:
                ok = left != right
            if not ok:
                return False
            left = right
        return True

    def visit_Call(self, node: ast.Call) -> Any:
        function = FUNCTIONS[node.func.id]
        args = [self.visit(arg) for arg in node.args]
        return function(*args)

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id == TOKENS_NAME:
            return self._tokens
        raise EvaluationFault(f"{node.id!r} is not a value")

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_List(self, node: ast.List) -> list:
        return [self.visit(element) for element in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self.visit(element) for element in node.elts)
