"""Export tracking and the ``parse_directives`` inspection API."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import re
from typing import Iterator, Optional

from ..constants import DIRECTIVE_PROBE
from .directives import scan_directives
from .errors import DirectiveConflictError, ExportResolutionError
from .nodes import (
    AssignmentExpression,
    ClassDeclaration,
    ClassExpression,
    ExportAllDeclaration,
    ExportDefaultDeclaration,
    ExportNamedDeclaration,
    ExpressionStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    Literal,
    MemberExpression,
    Node,
    Opaque,
    Program,
    Tier,
    VariableDeclaration,
    pattern_identifiers,
    unwrap_parens,
)
from .parser import parse
from .scope import build_scopes

log = logging.getLogger(__name__)

_PROBE = re.compile(DIRECTIVE_PROBE)


@dataclass(eq=False)
class ExportEntry:
    public: str
    local: Optional[str]
    statement: Node
    source: Optional[str] = None
    # function node the export is written as, when known
    function: Optional[Node] = None

    @property
    def is_default(self) -> bool:
        return self.public == "default"

    def require_local(self) -> str:
        if self.local is None:
            raise ExportResolutionError(self.public)
        return self.local


class ExportMap:
    """Ordered ``public name -> ExportEntry`` mapping.

    Adding a name that is already present keeps its original position and
    replaces the entry.
    """

    def __init__(self):
        self._entries: dict[str, ExportEntry] = {}

    def add(self, entry: ExportEntry) -> None:
        self._entries[entry.public] = entry

    def __iter__(self) -> Iterator[ExportEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, public: str) -> bool:
        return public in self._entries

    def __getitem__(self, public: str) -> ExportEntry:
        return self._entries[public]

    def get(self, public: str) -> Optional[ExportEntry]:
        return self._entries.get(public)

    def names(self) -> list[str]:
        return list(self._entries)

    def local_of(self, public: str) -> str:
        return self._entries[public].require_local()

    def as_dict(self) -> dict[str, Optional[str]]:
        return {entry.public: entry.local for entry in self._entries.values()}


def _named_function(node) -> Optional[str]:
    if isinstance(node, (FunctionDeclaration, FunctionExpression, ClassDeclaration, ClassExpression)):
        if node.id is not None:
            return node.id.name
    return None


def _property_name(node: MemberExpression) -> Optional[str]:
    prop = node.property
    if not node.computed and isinstance(prop, Literal):
        return prop.raw
    if node.computed and isinstance(prop, Literal) and prop.raw[:1] in "'\"":
        return prop.raw[1:-1]
    return None


def _is_exports_object(node) -> bool:
    node = unwrap_parens(node)
    if isinstance(node, Identifier):
        return node.name == "exports"
    if isinstance(node, MemberExpression) and not node.computed:
        obj = unwrap_parens(node.object)
        return (
            isinstance(obj, Identifier)
            and obj.name == "module"
            and _property_name(node) == "exports"
        )
    return False


class ExportTracker:
    """Collect a module's exports in encounter order."""

    def __init__(self):
        self.exports = ExportMap()
        self.aliases: dict[str, str] = {}

    def track(self, program: Program) -> ExportMap:
        self.exports = ExportMap()
        self.aliases = self._collect_aliases(program)
        for statement in program.body:
            if isinstance(statement, ExportNamedDeclaration):
                self._named(statement)
            elif isinstance(statement, ExportDefaultDeclaration):
                self._default(statement)
            elif isinstance(statement, ExportAllDeclaration):
                if statement.exported is not None:
                    name = statement.exported.strip("'\"")
                    self._add(ExportEntry(name, None, statement, statement.source))
            elif isinstance(statement, ExpressionStatement):
                self._commonjs(statement.expression, statement)
        log.debug("tracked exports: %s", self.exports.as_dict())
        return self.exports

    def resolve_alias(self, name: str) -> str:
        """Follow ``const x = y`` chains from ``name`` to the original binding."""
        seen = {name}
        while name in self.aliases:
            name = self.aliases[name]
            if name in seen:
                break
            seen.add(name)
        return name

    @staticmethod
    def _collect_aliases(program: Program) -> dict[str, str]:
        aliases = {}
        for statement in program.body:
            if isinstance(statement, ExportNamedDeclaration):
                statement = statement.declaration
            if not isinstance(statement, VariableDeclaration) or statement.kind != "const":
                continue
            for declarator in statement.declarations:
                init = unwrap_parens(declarator.init)
                if isinstance(declarator.id, Identifier) and isinstance(init, Identifier):
                    aliases[declarator.id.name] = init.name
        return aliases

    def _add(self, entry: ExportEntry) -> None:
        self.exports.add(entry)

    def _named(self, statement: ExportNamedDeclaration) -> None:
        declaration = statement.declaration
        if isinstance(declaration, VariableDeclaration):
            for declarator in declaration.declarations:
                init = unwrap_parens(declarator.init)
                for ident in pattern_identifiers(declarator.id):
                    self._add(ExportEntry(ident.name, ident.name, statement, function=init))
        elif declaration is not None:
            name = _named_function(declaration)
            if name is not None:
                self._add(ExportEntry(name, name, statement, function=declaration))
        for spec in statement.specifiers:
            self._add(
                ExportEntry(spec.exported_name, spec.local_name, statement, statement.source)
            )

    def _default(self, statement: ExportDefaultDeclaration) -> None:
        declaration = unwrap_parens(statement.declaration)
        local = _named_function(declaration)
        function = declaration
        if local is None and isinstance(declaration, Identifier):
            local = self.resolve_alias(declaration.name)
            function = None
        self._add(ExportEntry("default", local, statement, function=function))

    def _commonjs(self, expression, statement: Node) -> None:
        expression = unwrap_parens(expression)
        if isinstance(expression, Opaque) and expression.type == "sequence_expression":
            for part in expression.parts:
                if isinstance(part, Node):
                    self._commonjs(part, statement)
            return
        if not isinstance(expression, AssignmentExpression) or expression.operator != "=":
            return
        target = unwrap_parens(expression.left)
        if not isinstance(target, MemberExpression) or not _is_exports_object(target.object):
            return
        public = _property_name(target)
        if public is None:
            return
        value = unwrap_parens(expression.right)
        if isinstance(value, Identifier):
            self._add(ExportEntry(public, value.name, statement))
        elif isinstance(value, FunctionExpression) and value.id is not None:
            self._add(ExportEntry(public, value.id.name, statement, function=value))


@dataclass
class DirectiveParseResult:
    directive: Optional[Tier] = None
    exports: ExportMap = field(default_factory=ExportMap)

    def as_dict(self) -> dict[str, Optional[str]]:
        return self.exports.as_dict()


def parse_directives(source: str, file_id: str = "<module>") -> DirectiveParseResult:
    """Report a module's directive and the exports it governs."""

    if not _PROBE.search(source):
        return DirectiveParseResult()
    program = parse(source, file_id)
    tree = build_scopes(program)
    scan = scan_directives(program, tree)
    tracker = ExportTracker()
    exports = tracker.track(program)
    if scan.module_tier is not None:
        for entry in exports:
            if entry.source is None:
                entry.require_local()
        return DirectiveParseResult(scan.module_tier, exports)
    tiers = set(scan.marked.values())
    if not tiers:
        return DirectiveParseResult()
    if len(tiers) > 1:
        raise DirectiveConflictError()

    reported = ExportMap()
    for entry in exports:
        if entry.source is not None or entry.local is None:
            continue
        function = entry.function
        if function is None or function not in scan.marked:
            function = scan.top_level_functions.get(tracker.resolve_alias(entry.local))
        if function is None or function not in scan.marked:
            continue
        name = getattr(function, "id", None)
        local = name.name if isinstance(name, Identifier) else tracker.resolve_alias(entry.local)
        reported.add(ExportEntry(entry.public, local, entry.statement, function=function))
    return DirectiveParseResult(next(iter(tiers)), reported)


__all__ = [
    "ExportEntry",
    "ExportMap",
    "ExportTracker",
    "DirectiveParseResult",
    "parse_directives",
]
