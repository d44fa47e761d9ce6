"""Captured-variable analysis for inline server actions.

A hoisted action loses access to the scopes it was written in, so every
name it reads from an enclosing function or block has to be carried
along.  Module-level bindings and globals stay reachable after hoisting
and are never captured.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..constants import LAZY_WRAPPER_VALUE_KEY
from .errors import InvariantError
from .nodes import (
    ArrayExpression,
    ArrowFunctionExpression,
    AssignmentExpression,
    BlockStatement,
    ExpressionStatement,
    FunctionExpression,
    Identifier,
    Literal,
    MethodDefinition,
    Node,
    ObjectExpression,
    Opaque,
    ParenthesizedExpression,
    ReturnStatement,
    VariableDeclaration,
    VariableDeclarator,
    call,
)
from .scope import ScopeTree

log = logging.getLogger(__name__)


def free_variables(tree: ScopeTree, function: Node) -> list[str]:
    """Names ``function`` reads from enclosing non-module scopes.

    Order follows the first reference in source order; duplicates collapse.
    """

    own = tree.scope_of(function)
    if own is None:
        raise InvariantError(f"{function.type_name} has no scope in this tree")
    captured: list[str] = []
    seen: set[str] = set()
    for identifier, scope in tree.references_within(function):
        name = identifier.name
        if name in seen:
            continue
        binding = scope.lookup(name)
        if binding is None or binding.scope is tree.root:
            continue
        if binding.scope.is_within(own):
            continue
        seen.add(name)
        captured.append(name)
    if captured:
        log.debug("%s captures %s", function.type_name, ", ".join(captured))
    return captured


def lazy_wrapper() -> ArrowFunctionExpression:
    """Build ``thunk => { ... }`` returning an object with a memoised getter.

    The thunk runs on the first read of ``.value`` and never again.
    """

    cache = "cache"
    thunk = "thunk"
    guard = Opaque(
        "if_statement",
        [
            "if",
            " ",
            ParenthesizedExpression(Opaque("unary_expression", ["!", Identifier(cache)])),
            " ",
            BlockStatement(
                [
                    ExpressionStatement(
                        AssignmentExpression("=", Identifier(cache), call(Identifier(thunk)))
                    )
                ]
            ),
        ],
    )
    getter = MethodDefinition(
        ["get"],
        Literal(LAZY_WRAPPER_VALUE_KEY),
        FunctionExpression(None, [], BlockStatement([guard, ReturnStatement(Identifier(cache))])),
    )
    body = BlockStatement(
        [
            VariableDeclaration(
                "let", [VariableDeclarator(Identifier(cache), Literal("undefined"))]
            ),
            ReturnStatement(ObjectExpression([getter])),
        ]
    )
    return ArrowFunctionExpression([Identifier(thunk)], body)


def captured_values(names: list[str]) -> ArrayExpression:
    return ArrayExpression([Identifier(name) for name in names])


def deferred(value: Node, helper: Optional[str]) -> Node:
    """Wrap ``value`` in ``helper(() => value)`` when a helper is available."""

    if helper is None:
        return value
    return call(Identifier(helper), ArrowFunctionExpression([], value))


__all__ = ["free_variables", "lazy_wrapper", "captured_values", "deferred"]
