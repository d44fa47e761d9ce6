"""Syntax tree data structures for tierline.

Every node kind is a small dataclass listing its child slots in ``_fields``,
the same convention the standard :mod:`ast` module uses.  Syntax that the
engine never needs to reason about is kept as :class:`Opaque`: an ordered
list of verbatim text pieces interleaved with child nodes.  That keeps the
tree lossless for printing while every identifier stays visible to scope
analysis.

Nodes never hold a reference to their parent.  Upward lookups go through
:func:`find_slot`/:func:`ancestors`, which walk down from the root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
from typing import ClassVar, Iterator, Optional, Union


class Tier(str, Enum):
    """Execution tier declared by a directive."""

    CLIENT = "use client"
    SERVER = "use server"

    @classmethod
    def from_directive(cls, value: str) -> Optional["Tier"]:
        for tier in cls:
            if tier.value == value:
                return tier
        return None


@dataclass(eq=False)
class Node:
    _fields: ClassVar[tuple[str, ...]] = ()

    @property
    def type_name(self) -> str:
        return type(self).__name__


# -- Module structure ---------------------------------------------------------


@dataclass(eq=False)
class Directive(Node):
    value: str
    raw: str


@dataclass(eq=False)
class Program(Node):
    body: list = field(default_factory=list)
    directives: list = field(default_factory=list)
    hashbang: Optional[str] = None

    _fields: ClassVar[tuple[str, ...]] = ("directives", "body")


@dataclass(eq=False)
class Identifier(Node):
    name: str


@dataclass(eq=False)
class Literal(Node):
    raw: str


@dataclass(eq=False)
class ImportSpecifier(Node):
    imported: str
    local: Identifier
    type_only: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("local",)


@dataclass(eq=False)
class ImportDefaultSpecifier(Node):
    local: Identifier

    _fields: ClassVar[tuple[str, ...]] = ("local",)


@dataclass(eq=False)
class ImportNamespaceSpecifier(Node):
    local: Identifier

    _fields: ClassVar[tuple[str, ...]] = ("local",)


@dataclass(eq=False)
class ImportDeclaration(Node):
    specifiers: list
    source: str
    attributes: Optional[str] = None

    _fields: ClassVar[tuple[str, ...]] = ("specifiers",)

    @property
    def source_value(self) -> str:
        return _unquote(self.source)


@dataclass(eq=False)
class ExportSpecifier(Node):
    local: str
    exported: str

    @property
    def local_name(self) -> str:
        return _unquote(self.local)

    @property
    def exported_name(self) -> str:
        return _unquote(self.exported)


@dataclass(eq=False)
class ExportNamedDeclaration(Node):
    declaration: Optional[Node] = None
    specifiers: list = field(default_factory=list)
    source: Optional[str] = None

    _fields: ClassVar[tuple[str, ...]] = ("declaration", "specifiers")


@dataclass(eq=False)
class ExportDefaultDeclaration(Node):
    declaration: Node

    _fields: ClassVar[tuple[str, ...]] = ("declaration",)


@dataclass(eq=False)
class ExportAllDeclaration(Node):
    source: str
    exported: Optional[str] = None


# -- Statements ---------------------------------------------------------------


@dataclass(eq=False)
class BlockStatement(Node):
    body: list = field(default_factory=list)
    directives: list = field(default_factory=list)

    _fields: ClassVar[tuple[str, ...]] = ("directives", "body")


@dataclass(eq=False)
class ExpressionStatement(Node):
    expression: Node

    _fields: ClassVar[tuple[str, ...]] = ("expression",)


@dataclass(eq=False)
class ReturnStatement(Node):
    argument: Optional[Node] = None

    _fields: ClassVar[tuple[str, ...]] = ("argument",)


@dataclass(eq=False)
class VariableDeclarator(Node):
    id: Node
    init: Optional[Node] = None

    _fields: ClassVar[tuple[str, ...]] = ("id", "init")


@dataclass(eq=False)
class VariableDeclaration(Node):
    kind: str
    declarations: list

    _fields: ClassVar[tuple[str, ...]] = ("declarations",)


@dataclass(eq=False)
class ForInStatement(Node):
    kind: Optional[str]
    left: Node
    right: Node
    body: Node
    operator: str = "of"
    is_await: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("left", "right", "body")


@dataclass(eq=False)
class CatchClause(Node):
    param: Optional[Node]
    body: BlockStatement

    _fields: ClassVar[tuple[str, ...]] = ("param", "body")


# -- Functions and classes ----------------------------------------------------


@dataclass(eq=False)
class FunctionDeclaration(Node):
    id: Optional[Identifier]
    params: list
    body: BlockStatement
    is_async: bool = False
    generator: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("id", "params", "body")


@dataclass(eq=False)
class FunctionExpression(Node):
    id: Optional[Identifier]
    params: list
    body: BlockStatement
    is_async: bool = False
    generator: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("id", "params", "body")


@dataclass(eq=False)
class ArrowFunctionExpression(Node):
    params: list
    body: Node
    is_async: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("params", "body")


@dataclass(eq=False)
class MethodDefinition(Node):
    modifiers: list
    key: Node
    value: FunctionExpression
    computed: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("key", "value")


@dataclass(eq=False)
class ClassDeclaration(Node):
    id: Optional[Identifier]
    superclass: Optional[Node]
    body: list

    _fields: ClassVar[tuple[str, ...]] = ("id", "superclass", "body")


@dataclass(eq=False)
class ClassExpression(Node):
    id: Optional[Identifier]
    superclass: Optional[Node]
    body: list

    _fields: ClassVar[tuple[str, ...]] = ("id", "superclass", "body")


# -- Expressions --------------------------------------------------------------


@dataclass(eq=False)
class ArrayExpression(Node):
    elements: list = field(default_factory=list)

    _fields: ClassVar[tuple[str, ...]] = ("elements",)


@dataclass(eq=False)
class Property(Node):
    key: Node
    value: Node
    shorthand: bool = False
    computed: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("key", "value")


@dataclass(eq=False)
class ObjectExpression(Node):
    properties: list = field(default_factory=list)

    _fields: ClassVar[tuple[str, ...]] = ("properties",)


@dataclass(eq=False)
class SpreadElement(Node):
    argument: Node

    _fields: ClassVar[tuple[str, ...]] = ("argument",)


@dataclass(eq=False)
class CallExpression(Node):
    callee: Node
    arguments: list = field(default_factory=list)
    optional: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("callee", "arguments")


@dataclass(eq=False)
class MemberExpression(Node):
    object: Node
    property: Node
    computed: bool = False
    optional: bool = False

    _fields: ClassVar[tuple[str, ...]] = ("object", "property")


@dataclass(eq=False)
class AssignmentExpression(Node):
    operator: str
    left: Node
    right: Node

    _fields: ClassVar[tuple[str, ...]] = ("left", "right")


@dataclass(eq=False)
class AwaitExpression(Node):
    argument: Node

    _fields: ClassVar[tuple[str, ...]] = ("argument",)


@dataclass(eq=False)
class ParenthesizedExpression(Node):
    expression: Node

    _fields: ClassVar[tuple[str, ...]] = ("expression",)


# -- Patterns -----------------------------------------------------------------


@dataclass(eq=False)
class ObjectPattern(Node):
    properties: list = field(default_factory=list)

    _fields: ClassVar[tuple[str, ...]] = ("properties",)


@dataclass(eq=False)
class ArrayPattern(Node):
    elements: list = field(default_factory=list)

    _fields: ClassVar[tuple[str, ...]] = ("elements",)


@dataclass(eq=False)
class AssignmentPattern(Node):
    left: Node
    right: Node

    _fields: ClassVar[tuple[str, ...]] = ("left", "right")


@dataclass(eq=False)
class RestElement(Node):
    argument: Node

    _fields: ClassVar[tuple[str, ...]] = ("argument",)


# -- Everything else ----------------------------------------------------------


@dataclass(eq=False)
class Opaque(Node):
    """Unmodelled syntax: verbatim text interleaved with child nodes."""

    type: str
    parts: list = field(default_factory=list)

    _fields: ClassVar[tuple[str, ...]] = ("parts",)

    @property
    def is_statement(self) -> bool:
        return self.type.endswith(STATEMENT_SUFFIXES)


STATEMENT_SUFFIXES = (
    "_statement",
    "_clause",
    "_declaration",
    "_body",
    "_definition",
    "switch_case",
    "switch_default",
    "class_static_block",
)

FUNCTION_TYPES = (FunctionDeclaration, FunctionExpression, ArrowFunctionExpression)
CLASS_TYPES = (ClassDeclaration, ClassExpression)
PATTERN_TYPES = (ObjectPattern, ArrayPattern, AssignmentPattern, RestElement)
DECLARATION_TYPES = (
    FunctionDeclaration,
    ClassDeclaration,
    VariableDeclaration,
    ImportDeclaration,
    ExportNamedDeclaration,
    ExportDefaultDeclaration,
    ExportAllDeclaration,
)
STATEMENT_TYPES = DECLARATION_TYPES + (
    BlockStatement,
    ExpressionStatement,
    ReturnStatement,
    ForInStatement,
)

AnyNode = Union[Node, str, None]


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "'\"":
        return raw[1:-1]
    return raw


def is_function(node) -> bool:
    return isinstance(node, FUNCTION_TYPES)


def is_expression(node) -> bool:
    """Whether ``node`` sits in expression position (parentheses excluded)."""

    if isinstance(node, Opaque):
        return not node.is_statement
    if isinstance(node, (STATEMENT_TYPES, Program, Directive, VariableDeclarator)):
        return False
    if isinstance(node, (Property, MethodDefinition, CatchClause, SpreadElement)):
        return False
    if isinstance(node, (ImportSpecifier, ImportDefaultSpecifier, ImportNamespaceSpecifier)):
        return False
    if isinstance(node, (ExportSpecifier, ParenthesizedExpression)):
        return False
    if isinstance(node, PATTERN_TYPES):
        return False
    return True


# -- Traversal ----------------------------------------------------------------


def iter_fields(node: Node) -> Iterator[tuple[str, object]]:
    for name in node._fields:
        yield name, getattr(node, name)


def iter_child_nodes(node: Node) -> Iterator[Node]:
    for _, value in iter_fields(node):
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and every descendant in pre-order (source order)."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(iter_child_nodes(current))))


class NodeVisitor:
    """Dispatch ``visit_<Kind>`` methods, falling back to :meth:`generic_visit`."""

    def visit(self, node: Node):
        method = getattr(self, "visit_" + node.type_name, self.generic_visit)
        return method(node)

    def generic_visit(self, node: Node):
        for child in iter_child_nodes(node):
            self.visit(child)


@dataclass
class Slot:
    """Position of a node inside its parent: ``parent.field[index]``."""

    parent: Node
    field: str
    index: Optional[int] = None

    def get(self):
        value = getattr(self.parent, self.field)
        if self.index is None:
            return value
        return value[self.index]

    def set(self, new_node) -> None:
        if self.index is None:
            setattr(self.parent, self.field, new_node)
        else:
            getattr(self.parent, self.field)[self.index] = new_node


def _child_slots(node: Node) -> Iterator[tuple[Slot, Node]]:
    for name, value in iter_fields(node):
        if isinstance(value, Node):
            yield Slot(node, name), value
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, Node):
                    yield Slot(node, name, index), item


def ancestors(root: Node, target: Node) -> Optional[list[Slot]]:
    """Return the chain of slots leading from ``root`` down to ``target``."""

    if root is target:
        return []
    stack: list[tuple[Node, list[Slot]]] = [(root, [])]
    while stack:
        current, path = stack.pop()
        for slot, child in _child_slots(current):
            if child is target:
                return path + [slot]
            stack.append((child, path + [slot]))
    return None


def find_slot(root: Node, target: Node) -> Optional[Slot]:
    path = ancestors(root, target)
    if not path:
        return None
    return path[-1]


def replace_node(root: Node, old: Node, new: Node) -> Node:
    slot = find_slot(root, old)
    if slot is None:
        raise LookupError(f"{old.type_name} is not part of this tree")
    slot.set(new)
    return new


def remove_statement(root: Node, statement: Node) -> Slot:
    slot = find_slot(root, statement)
    if slot is None or slot.index is None:
        raise LookupError(f"{statement.type_name} is not a statement of this tree")
    del getattr(slot.parent, slot.field)[slot.index]
    return slot


def last_import_index(body: list) -> Optional[int]:
    for index in range(len(body) - 1, -1, -1):
        if isinstance(body[index], ImportDeclaration):
            return index
    return None


def insert_after(body: list, index: Optional[int], statement: Node) -> int:
    """Insert ``statement`` after ``body[index]`` (at the front when ``None``)."""

    position = 0 if index is None else index + 1
    body.insert(position, statement)
    return position


def pattern_identifiers(pattern) -> Iterator[Identifier]:
    """Yield the binding identifiers introduced by a declaration pattern."""

    if pattern is None:
        return
    if isinstance(pattern, Identifier):
        yield pattern
    elif isinstance(pattern, ObjectPattern):
        for prop in pattern.properties:
            if isinstance(prop, RestElement):
                yield from pattern_identifiers(prop.argument)
            else:
                yield from pattern_identifiers(prop.value)
    elif isinstance(pattern, ArrayPattern):
        for element in pattern.elements:
            yield from pattern_identifiers(element)
    elif isinstance(pattern, AssignmentPattern):
        yield from pattern_identifiers(pattern.left)
    elif isinstance(pattern, RestElement):
        yield from pattern_identifiers(pattern.argument)


def unwrap_parens(node):
    while isinstance(node, ParenthesizedExpression):
        node = node.expression
    return node


# -- Builders -----------------------------------------------------------------


def identifier(name: str) -> Identifier:
    return Identifier(name)


def string_literal(value: str) -> Literal:
    return Literal(json.dumps(value))


def null_literal() -> Literal:
    return Literal("null")


def member(obj: Node, name: str) -> MemberExpression:
    return MemberExpression(obj, Literal(name))


def call(callee: Node, *args: Node) -> CallExpression:
    return CallExpression(callee, list(args))


def const_declaration(name: str, init: Node, kind: str = "const") -> VariableDeclaration:
    return VariableDeclaration(kind, [VariableDeclarator(Identifier(name), init)])


__all__ = [
    "Tier",
    "Node",
    "Directive",
    "Program",
    "Identifier",
    "Literal",
    "ImportSpecifier",
    "ImportDefaultSpecifier",
    "ImportNamespaceSpecifier",
    "ImportDeclaration",
    "ExportSpecifier",
    "ExportNamedDeclaration",
    "ExportDefaultDeclaration",
    "ExportAllDeclaration",
    "BlockStatement",
    "ExpressionStatement",
    "ReturnStatement",
    "VariableDeclarator",
    "VariableDeclaration",
    "ForInStatement",
    "CatchClause",
    "FunctionDeclaration",
    "FunctionExpression",
    "ArrowFunctionExpression",
    "MethodDefinition",
    "ClassDeclaration",
    "ClassExpression",
    "ArrayExpression",
    "Property",
    "ObjectExpression",
    "SpreadElement",
    "CallExpression",
    "MemberExpression",
    "AssignmentExpression",
    "AwaitExpression",
    "ParenthesizedExpression",
    "ObjectPattern",
    "ArrayPattern",
    "AssignmentPattern",
    "RestElement",
    "Opaque",
    "FUNCTION_TYPES",
    "CLASS_TYPES",
    "PATTERN_TYPES",
    "DECLARATION_TYPES",
    "STATEMENT_TYPES",
    "NodeVisitor",
    "Slot",
    "ancestors",
    "call",
    "const_declaration",
    "find_slot",
    "identifier",
    "insert_after",
    "is_expression",
    "is_function",
    "iter_child_nodes",
    "iter_fields",
    "last_import_index",
    "member",
    "null_literal",
    "pattern_identifiers",
    "remove_statement",
    "replace_node",
    "string_literal",
    "unwrap_parens",
    "walk",
]
