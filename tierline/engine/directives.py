"""Directive scanning.

Classifies a module by its ``"use client"`` / ``"use server"`` markers and
collects the inline server actions that have to be hoisted.  The scan runs
once over the untouched tree, before any rewriting happens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional

from .closure import free_variables
from .errors import DirectiveConflictError
from .nodes import (
    DECLARATION_TYPES,
    BlockStatement,
    ClassDeclaration,
    FunctionDeclaration,
    Identifier,
    MethodDefinition,
    Node,
    Program,
    Tier,
    VariableDeclarator,
    ancestors,
    is_expression,
    is_function,
    walk,
)
from .scope import Binding, ScopeTree, build_scopes

log = logging.getLogger(__name__)


@dataclass(eq=False)
class InlineAction:
    """A nested ``"use server"`` function that must move to module scope."""

    function: Node
    free_variables: list[str]
    name: Optional[str] = None
    hoisted: Optional[Node] = None


@dataclass
class ScanResult:
    module_tier: Optional[Tier] = None
    function_tier: Optional[Tier] = None
    actions: list[InlineAction] = field(default_factory=list)
    # names of module-level bindings initialised with a function, in order
    top_level_functions: dict[str, Node] = field(default_factory=dict)
    in_place_actions: dict[str, Node] = field(default_factory=dict)
    # every function carrying a recorded marker
    marked: dict[Node, Tier] = field(default_factory=dict)

    @property
    def tier(self) -> Optional[Tier]:
        return self.module_tier or self.function_tier

    @property
    def has_markers(self) -> bool:
        return self.module_tier is not None or bool(self.marked)


def _tiers(directives) -> set[Tier]:
    found = set()
    for directive in directives:
        tier = Tier.from_directive(directive.value)
        if tier is not None:
            found.add(tier)
    return found


def module_tier(program: Program) -> Optional[Tier]:
    tiers = _tiers(program.directives)
    if len(tiers) > 1:
        raise DirectiveConflictError()
    return next(iter(tiers), None)


def function_marker(function: Node) -> Optional[Tier]:
    body = function.body
    if not isinstance(body, BlockStatement):
        return None
    tiers = _tiers(body.directives)
    if len(tiers) > 1:
        raise DirectiveConflictError()
    return next(iter(tiers), None)


def enclosing_declaration(program: Program, function: Node) -> Optional[Node]:
    """Return the declaration ``function`` is the value of, if any.

    Walking up stops at the first declarator or declaration.  Any other
    expression on the way means the function is only part of a larger
    value, so there is no declaration to speak of.
    """
    path = ancestors(program, function)
    if path is None:
        return None
    node = function
    for slot in reversed(path):
        if isinstance(node, (VariableDeclarator,) + DECLARATION_TYPES):
            return node
        if node is not function and is_expression(node):
            return None
        node = slot.parent
    return None


def top_level_binding(program: Program, tree: ScopeTree, function: Node) -> Optional[Binding]:
    declaration = enclosing_declaration(program, function)
    if not isinstance(declaration, (VariableDeclarator, FunctionDeclaration, ClassDeclaration)):
        return None
    ident = declaration.id
    if not isinstance(ident, Identifier):
        return None
    binding = tree.binding_of(ident)
    if binding is None or binding.scope is not tree.root:
        return None
    return binding


def scan_directives(program: Program, tree: Optional[ScopeTree] = None) -> ScanResult:
    """Classify ``program`` and collect its inline server actions."""

    if tree is None:
        tree = build_scopes(program)
    result = ScanResult(module_tier=module_tier(program))
    methods = {node.value for node in walk(program) if isinstance(node, MethodDefinition)}
    function_tiers: set[Tier] = set()

    for node in walk(program):
        if not is_function(node):
            continue
        marker = function_marker(node)
        if node in methods:
            # methods are classified but never hoisted or registered
            if marker is not None:
                result.marked[node] = marker
                function_tiers.add(marker)
            continue
        binding = top_level_binding(program, tree, node)
        if binding is not None:
            result.top_level_functions.setdefault(binding.name, node)
        if marker is None:
            continue
        result.marked[node] = marker
        function_tiers.add(marker)
        if marker is not Tier.SERVER:
            continue
        if binding is not None:
            result.in_place_actions.setdefault(binding.name, node)
            log.debug("in-place action %s", binding.name)
        else:
            action = InlineAction(node, free_variables(tree, node))
            result.actions.append(action)
            log.debug("inline action #%d captures %s", len(result.actions), action.free_variables)

    if result.module_tier is Tier.CLIENT and Tier.SERVER in function_tiers:
        raise DirectiveConflictError()
    if result.module_tier is Tier.SERVER and Tier.CLIENT in function_tiers:
        raise DirectiveConflictError()
    if Tier.SERVER in function_tiers:
        result.function_tier = Tier.SERVER
    elif Tier.CLIENT in function_tiers:
        result.function_tier = Tier.CLIENT
    log.debug(
        "module tier %s, %d marked functions, %d inline actions",
        result.module_tier.value if result.module_tier else None,
        len(result.marked),
        len(result.actions),
    )
    return result


def strip_module_directives(program: Program, tier: Tier) -> int:
    """Remove ``tier`` markers from the module prologue; return how many."""
    kept = [d for d in program.directives if d.value != tier.value]
    removed = len(program.directives) - len(kept)
    program.directives[:] = kept
    return removed


def strip_function_directive(function: Node, tier: Tier) -> None:
    body = function.body
    if isinstance(body, BlockStatement):
        body.directives[:] = [d for d in body.directives if d.value != tier.value]


__all__ = [
    "InlineAction",
    "ScanResult",
    "module_tier",
    "function_marker",
    "enclosing_declaration",
    "top_level_binding",
    "scan_directives",
    "strip_module_directives",
    "strip_function_directive",
]
