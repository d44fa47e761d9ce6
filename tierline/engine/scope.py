"""Lexical scope model for parsed modules.

Scopes are created while walking the tree once.  Bindings are registered
as they are met and references are recorded together with the scope they
appear in; resolution is deferred until the whole module has been seen, so
hoisted ``var`` and function declarations resolve no matter where they are
written.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import logging
from typing import Iterator, Optional

from .nodes import (
    ArrayPattern,
    ArrowFunctionExpression,
    AssignmentExpression,
    AssignmentPattern,
    BlockStatement,
    CatchClause,
    ClassDeclaration,
    ClassExpression,
    ExportDefaultDeclaration,
    ExportNamedDeclaration,
    ForInStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    ImportDeclaration,
    MemberExpression,
    MethodDefinition,
    Node,
    ObjectPattern,
    Opaque,
    Program,
    Property,
    RestElement,
    VariableDeclaration,
    iter_child_nodes,
    walk,
)

log = logging.getLogger(__name__)

SCOPE_KINDS = ("module", "function", "block", "class", "catch")

# Opaque statements that open their own block scope.
SCOPED_OPAQUE_TYPES = ("for_statement", "switch_statement", "class_static_block")


@dataclass(eq=False)
class Binding:
    name: str
    kind: str
    scope: "Scope"
    identifier: Optional[Identifier] = None
    declarator: Optional[Node] = None


class Scope:
    def __init__(self, kind: str, node: Node, parent: "Scope | None" = None):
        self.kind = kind
        self.node = node
        self.parent = parent
        self.children: list[Scope] = []
        self.bindings: dict[str, Binding] = {}
        if parent:
            parent.children.append(self)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"Scope({self.kind}:{self.node.type_name})"

    def declare(self, name, kind, identifier=None, declarator=None) -> Binding:
        binding = Binding(name, kind, self, identifier, declarator)
        self.bindings[name] = binding
        return binding

    def lookup(self, name: str) -> Optional[Binding]:
        scope = self
        while scope is not None:
            if name in scope.bindings:
                return scope.bindings[name]
            scope = scope.parent
        return None

    def is_within(self, other: "Scope") -> bool:
        """True when this scope is ``other`` or nested somewhere inside it."""
        scope = self
        while scope is not None:
            if scope is other:
                return True
            scope = scope.parent
        return False

    def hoist_target(self) -> "Scope":
        scope = self
        while scope.kind not in ("function", "module"):
            scope = scope.parent
        return scope

    @property
    def depth(self) -> int:
        depth = 0
        scope = self.parent
        while scope is not None:
            depth += 1
            scope = scope.parent
        return depth

    def path(self) -> str:
        names = []
        scope = self
        while scope is not None:
            index = scope.parent.children.index(scope) if scope.parent else 0
            names.append(f"{scope.kind}{index}")
            scope = scope.parent
        return ".".join(reversed(names))

    def stable_id(self) -> str:
        return hashlib.blake2s(self.path().encode("utf-8"), digest_size=6).hexdigest()


class ScopeTree:
    """Scope hierarchy of one module plus every recorded reference."""

    def __init__(self, program: Program):
        self.program = program
        self.root = Scope("module", program)
        self.scopes: dict[Node, Scope] = {program: self.root}
        self.references: list[tuple[Identifier, Scope]] = []
        # declaring identifier -> binding it introduced
        self.declarations: dict[Identifier, Binding] = {}

    def scope_of(self, node: Node) -> Optional[Scope]:
        return self.scopes.get(node)

    def all_scopes(self) -> Iterator[Scope]:
        stack = [self.root]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(scope.children))

    def binding_of(self, identifier: Identifier) -> Optional[Binding]:
        return self.declarations.get(identifier)

    def resolve(self, identifier: Identifier, scope: Scope) -> Optional[Binding]:
        return scope.lookup(identifier.name)

    def references_within(self, node: Node) -> Iterator[tuple[Identifier, Scope]]:
        inside = set(walk(node))
        for identifier, scope in self.references:
            if identifier in inside:
                yield identifier, scope

    def names(self) -> set[str]:
        names = set()
        for scope in self.all_scopes():
            names.update(scope.bindings)
        names.update(identifier.name for identifier, _ in self.references)
        return names


def build_scopes(program: Program) -> ScopeTree:
    tree = ScopeTree(program)
    _ScopeBuilder(tree).statements(program.body, tree.root)
    log.debug(
        "built %d scopes, %d references",
        sum(1 for _ in tree.all_scopes()),
        len(tree.references),
    )
    return tree


class _ScopeBuilder:
    def __init__(self, tree: ScopeTree):
        self.tree = tree

    def open(self, kind: str, node: Node, parent: Scope) -> Scope:
        scope = Scope(kind, node, parent)
        self.tree.scopes[node] = scope
        return scope

    def declare(self, scope: Scope, name, kind, identifier=None, declarator=None):
        binding = scope.declare(name, kind, identifier, declarator)
        if identifier is not None:
            self.tree.declarations[identifier] = binding
        return binding

    def reference(self, identifier: Identifier, scope: Scope) -> None:
        self.tree.references.append((identifier, scope))

    def statements(self, items, scope: Scope) -> None:
        for item in items:
            self.visit(item, scope)

    # -- bindings -----------------------------------------------------------

    def bind_pattern(self, pattern, kind: str, target: Scope, scope: Scope, declarator=None):
        """Declare the names bound by ``pattern`` in ``target``.

        Default values and computed keys are evaluated in ``scope``.
        """
        if pattern is None:
            return
        if isinstance(pattern, Identifier):
            self.declare(target, pattern.name, kind, pattern, declarator)
        elif isinstance(pattern, ObjectPattern):
            for prop in pattern.properties:
                if isinstance(prop, Property):
                    if prop.computed:
                        self.visit(prop.key, scope)
                    self.bind_pattern(prop.value, kind, target, scope, declarator)
                else:
                    self.bind_pattern(prop, kind, target, scope, declarator)
        elif isinstance(pattern, ArrayPattern):
            for element in pattern.elements:
                self.bind_pattern(element, kind, target, scope, declarator)
        elif isinstance(pattern, AssignmentPattern):
            self.bind_pattern(pattern.left, kind, target, scope, declarator)
            self.visit(pattern.right, scope)
        elif isinstance(pattern, RestElement):
            self.bind_pattern(pattern.argument, kind, target, scope, declarator)
        else:
            self.visit(pattern, scope)

    def assign_pattern(self, pattern, scope: Scope) -> None:
        """Record the targets of a destructuring assignment as references."""
        if isinstance(pattern, ObjectPattern):
            for prop in pattern.properties:
                if isinstance(prop, Property):
                    if prop.computed:
                        self.visit(prop.key, scope)
                    self.assign_pattern(prop.value, scope)
                else:
                    self.assign_pattern(prop, scope)
        elif isinstance(pattern, ArrayPattern):
            for element in pattern.elements:
                if element is not None:
                    self.assign_pattern(element, scope)
        elif isinstance(pattern, AssignmentPattern):
            self.assign_pattern(pattern.left, scope)
            self.visit(pattern.right, scope)
        elif isinstance(pattern, RestElement):
            self.assign_pattern(pattern.argument, scope)
        else:
            self.visit(pattern, scope)

    def function(self, node, scope: Scope) -> None:
        inner = self.open("function", node, scope)
        if isinstance(node, FunctionExpression) and node.id is not None:
            self.declare(inner, node.id.name, "local", node.id, node)
        for param in node.params:
            self.bind_pattern(param, "param", inner, inner, node)
        body = node.body
        if isinstance(body, BlockStatement):
            self.statements(body.body, inner)
        else:
            self.visit(body, inner)

    def klass(self, node, scope: Scope) -> None:
        if node.superclass is not None:
            self.visit(node.superclass, scope)
        inner = self.open("class", node, scope)
        if isinstance(node, ClassExpression) and node.id is not None:
            self.declare(inner, node.id.name, "local", node.id, node)
        self.statements(node.body, inner)

    # -- dispatch -----------------------------------------------------------

    def visit(self, node, scope: Scope) -> None:
        if node is None or isinstance(node, str):
            return
        method = getattr(self, "visit_" + node.type_name, None)
        if method is not None:
            method(node, scope)
        else:
            for child in iter_child_nodes(node):
                self.visit(child, scope)

    def visit_Identifier(self, node, scope):
        self.reference(node, scope)

    def visit_ImportDeclaration(self, node: ImportDeclaration, scope):
        for spec in node.specifiers:
            self.declare(self.tree.root, spec.local.name, "module", spec.local, node)

    def visit_ExportNamedDeclaration(self, node: ExportNamedDeclaration, scope):
        self.visit(node.declaration, scope)

    def visit_ExportDefaultDeclaration(self, node: ExportDefaultDeclaration, scope):
        self.visit(node.declaration, scope)

    def visit_VariableDeclaration(self, node: VariableDeclaration, scope):
        target = scope.hoist_target() if node.kind == "var" else scope
        for declarator in node.declarations:
            self.bind_pattern(declarator.id, node.kind, target, scope, declarator)
            self.visit(declarator.init, scope)

    def visit_FunctionDeclaration(self, node: FunctionDeclaration, scope):
        if node.id is not None:
            self.declare(scope, node.id.name, "hoisted", node.id, node)
        self.function(node, scope)

    def visit_FunctionExpression(self, node, scope):
        self.function(node, scope)

    def visit_ArrowFunctionExpression(self, node: ArrowFunctionExpression, scope):
        self.function(node, scope)

    def visit_ClassDeclaration(self, node: ClassDeclaration, scope):
        if node.id is not None:
            self.declare(scope, node.id.name, "let", node.id, node)
        self.klass(node, scope)

    def visit_ClassExpression(self, node, scope):
        self.klass(node, scope)

    def visit_MethodDefinition(self, node: MethodDefinition, scope):
        if node.computed:
            self.visit(node.key, scope)
        self.function(node.value, scope)

    def visit_BlockStatement(self, node: BlockStatement, scope):
        self.statements(node.body, self.open("block", node, scope))

    def visit_ForInStatement(self, node: ForInStatement, scope):
        inner = self.open("block", node, scope)
        if node.kind:
            target = inner.hoist_target() if node.kind == "var" else inner
            self.bind_pattern(node.left, node.kind, target, inner, node)
        else:
            self.assign_pattern(node.left, inner)
        self.visit(node.right, inner)
        self.visit(node.body, inner)

    def visit_CatchClause(self, node: CatchClause, scope):
        inner = self.open("catch", node, scope)
        self.bind_pattern(node.param, "let", inner, inner, node)
        self.statements(node.body.body, inner)

    def visit_Property(self, node: Property, scope):
        if node.computed:
            self.visit(node.key, scope)
        self.visit(node.value, scope)

    def visit_MemberExpression(self, node: MemberExpression, scope):
        self.visit(node.object, scope)
        if node.computed:
            self.visit(node.property, scope)

    def visit_AssignmentExpression(self, node: AssignmentExpression, scope):
        self.assign_pattern(node.left, scope)
        self.visit(node.right, scope)

    def visit_Opaque(self, node: Opaque, scope):
        if node.type in SCOPED_OPAQUE_TYPES:
            scope = self.open("block", node, scope)
        for part in node.parts:
            self.visit(part, scope)


__all__ = ["Binding", "Scope", "ScopeTree", "build_scopes", "SCOPE_KINDS"]
