"""Source to tree conversion on top of tree-sitter.

The concrete syntax tree produced by the TypeScript/TSX grammars is folded
into the node classes of :mod:`tierline.engine.nodes`.  TypeScript-only
syntax is dropped on the way so the rest of the engine only ever sees plain
JavaScript shapes.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Parser

from .errors import ParseError
from .nodes import (
    ArrayExpression,
    ArrayPattern,
    ArrowFunctionExpression,
    AssignmentExpression,
    AssignmentPattern,
    AwaitExpression,
    BlockStatement,
    CallExpression,
    CatchClause,
    ClassDeclaration,
    ClassExpression,
    Directive,
    ExportAllDeclaration,
    ExportDefaultDeclaration,
    ExportNamedDeclaration,
    ExportSpecifier,
    ExpressionStatement,
    ForInStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    ImportDeclaration,
    ImportDefaultSpecifier,
    ImportNamespaceSpecifier,
    ImportSpecifier,
    Literal,
    MemberExpression,
    MethodDefinition,
    ObjectExpression,
    ObjectPattern,
    Opaque,
    ParenthesizedExpression,
    Program,
    Property,
    RestElement,
    ReturnStatement,
    SpreadElement,
    VariableDeclaration,
    VariableDeclarator,
)

log = logging.getLogger(__name__)

TYPESCRIPT_EXTENSIONS = (".ts", ".mts", ".cts")

# Subtrees removed wherever they appear.
DROPPED_TYPES = frozenset(
    {
        "comment",
        "type_annotation",
        "type_arguments",
        "type_parameters",
        "asserts_annotation",
        "type_predicate_annotation",
        "omitting_type_annotation",
        "opting_type_annotation",
        "adding_type_annotation",
        "implements_clause",
        "accessibility_modifier",
        "override_modifier",
        "interface_declaration",
        "type_alias_declaration",
        "ambient_declaration",
        "function_signature",
        "abstract_method_signature",
        "method_signature",
        "index_signature",
    }
)

# Expression wrappers that only carry type information.
TYPE_WRAPPERS = frozenset(
    {
        "as_expression",
        "satisfies_expression",
        "non_null_expression",
        "type_assertion",
        "instantiation_expression",
    }
)

# Keyword tokens that only make sense to the TypeScript checker.
TYPE_ONLY_TOKENS = frozenset({"readonly", "declare", "abstract", "?", "!"})

LEAF_TYPES = frozenset(
    {"string", "number", "regex", "jsx_text", "html_character_reference"}
)

FUNCTION_EXPRESSION_TYPES = ("function_expression", "function", "generator_function")
FUNCTION_DECLARATION_TYPES = ("function_declaration", "generator_function_declaration")
CLASS_DECLARATION_TYPES = ("class_declaration", "abstract_class_declaration")
VERBATIM_GAP_PARENTS = ("jsx_element", "jsx_fragment")


@lru_cache(maxsize=None)
def _language(typescript: bool) -> Language:
    if typescript:
        return Language(tstypescript.language_typescript())
    return Language(tstypescript.language_tsx())


def language_for(file_id: str) -> Language:
    """Pick the grammar by extension: TypeScript for ``.ts``, TSX otherwise."""

    _, ext = os.path.splitext(file_id or "")
    return _language(ext.lower() in TYPESCRIPT_EXTENSIONS)


def _fallback_for(language: Language) -> Language:
    return _language(language is not _language(True))


def parse(source: str, file_id: str = "<module>") -> Program:
    """Parse ``source`` into a :class:`Program`.

    The grammar picked by extension is tried first.  When it reports errors
    the other grammar gets a chance, since JSX does turn up in ``.ts``
    files and ``<T>`` casts in ``.js`` ones; the first error reported is the
    one raised.
    """

    data = source.encode("utf-8")
    preferred = language_for(file_id)
    root = Parser(preferred).parse(data).root_node
    if root.has_error:
        retry = Parser(_fallback_for(preferred)).parse(data).root_node
        if retry.has_error:
            bad = _first_error(root)
            row, column = bad.start_point
            snippet = data[bad.start_byte : bad.end_byte][:40].decode("utf-8", "replace")
            raise ParseError(file_id, row + 1, column + 1, snippet)
        log.debug("%s: parsed with the fallback grammar", file_id)
        root = retry
    program = _Converter(data).program(root)
    log.debug("parsed %s: %d top-level statements", file_id, len(program.body))
    return program


def _first_error(node):
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        stack.extend(reversed(current.children))
    return node


class _Converter:
    def __init__(self, source: bytes):
        self.source = source

    # -- helpers ------------------------------------------------------------

    def text(self, node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8")

    @staticmethod
    def _named(node):
        return [c for c in node.named_children if c.type not in DROPPED_TYPES]

    @staticmethod
    def _has_token(node, token: str) -> bool:
        return any(not c.is_named and c.type == token for c in node.children)

    def _first_expression(self, node):
        for child in self._named(node):
            return self.convert(child)
        return None

    # -- dispatch -----------------------------------------------------------

    def convert(self, node):
        if node is None or node.type in DROPPED_TYPES:
            return None
        if node.type in TYPE_WRAPPERS:
            return self._first_expression(node)
        handler = getattr(self, "_convert_" + node.type, None)
        if handler is not None:
            return handler(node)
        if node.type in LEAF_TYPES:
            return Literal(self.text(node))
        if node.named_child_count == 0 and node.is_named:
            return Literal(self.text(node))
        return self.opaque(node)

    def opaque(self, node, override=None) -> Opaque:
        """Keep ``node`` verbatim apart from its converted named children.

        Whitespace between pieces collapses to a single space, except inside
        JSX element bodies where it is significant.  ``override`` is an
        optional ``(child, converted)`` pair used in place of converting that
        child.
        """

        verbatim = node.type in VERBATIM_GAP_PARENTS
        parts: list = []
        cursor = node.start_byte
        pending_gap = False
        for child in node.children:
            gap = self.slice(cursor, child.start_byte)
            cursor = child.end_byte
            if override is not None and child == override[0]:
                piece = override[1]
            elif child.type in DROPPED_TYPES:
                piece = None
            elif not child.is_named:
                dropped = child.type in TYPE_ONLY_TOKENS and node.type.endswith(
                    "field_definition"
                )
                piece = None if dropped else self.text(child)
            else:
                piece = self.convert(child)
            if piece is None or piece == "":
                pending_gap = pending_gap or bool(gap)
                continue
            if verbatim:
                if gap:
                    parts.append(gap)
            elif (gap or pending_gap) and parts:
                parts.append(" ")
            pending_gap = False
            parts.append(piece)
        return Opaque(node.type, parts)

    # -- module structure ---------------------------------------------------

    def program(self, node) -> Program:
        program = Program()
        statements = []
        for child in node.named_children:
            if child.type == "hash_bang_line":
                program.hashbang = self.text(child)
            elif child.type not in DROPPED_TYPES:
                statements.append(child)
        program.directives, rest = self._prologue(statements)
        program.body = self._statements(rest)
        return program

    def _prologue(self, statements):
        directives = []
        index = 0
        for child in statements:
            literal = self._directive_literal(child)
            if literal is None:
                break
            raw = self.text(literal)
            directives.append(Directive(raw[1:-1], raw))
            index += 1
        return directives, statements[index:]

    def _directive_literal(self, statement):
        if statement.type != "expression_statement":
            return None
        named = self._named(statement)
        if len(named) == 1 and named[0].type == "string":
            return named[0]
        return None

    def _statements(self, children) -> list:
        body = []
        for child in children:
            converted = self.convert(child)
            if converted is not None:
                body.append(converted)
        return body

    def _block(self, node, function_body: bool = False) -> BlockStatement:
        children = self._named(node)
        if function_body:
            directives, children = self._prologue(children)
        else:
            directives = []
        return BlockStatement(self._statements(children), directives)

    def _convert_statement_block(self, node):
        return self._block(node)

    def _convert_expression_statement(self, node):
        expression = self._first_expression(node)
        if expression is None:
            return None
        return ExpressionStatement(expression)

    def _convert_return_statement(self, node):
        return ReturnStatement(self._first_expression(node))

    # -- imports and exports ------------------------------------------------

    def _convert_import_statement(self, node):
        if self._has_token(node, "type"):
            return None
        source = node.child_by_field_name("source")
        if source is None:
            return self.opaque(node)
        attributes = None
        specifiers = []
        type_only = 0
        for child in node.named_children:
            if child.type == "import_clause":
                for part in child.named_children:
                    if part.type == "identifier":
                        specifiers.append(ImportDefaultSpecifier(Identifier(self.text(part))))
                    elif part.type == "namespace_import":
                        name = [c for c in part.named_children if c.type == "identifier"][0]
                        specifiers.append(ImportNamespaceSpecifier(Identifier(self.text(name))))
                    elif part.type == "named_imports":
                        for spec in part.named_children:
                            if spec.type != "import_specifier":
                                continue
                            if self._has_token(spec, "type"):
                                type_only += 1
                                continue
                            specifiers.append(self._import_specifier(spec))
            elif child.type in ("import_attribute", "import_attributes"):
                attributes = self.text(child)
            elif child.type == "import_require_clause":
                return self.opaque(node)
        if type_only and not specifiers:
            return None
        return ImportDeclaration(specifiers, self.text(source), attributes)

    def _import_specifier(self, spec) -> ImportSpecifier:
        name = spec.child_by_field_name("name")
        alias = spec.child_by_field_name("alias")
        imported = self.text(name)
        local = self.text(alias) if alias is not None else imported
        return ImportSpecifier(imported, Identifier(local))

    def _convert_export_statement(self, node):
        if self._has_token(node, "type"):
            return None
        source = node.child_by_field_name("source")
        source_text = self.text(source) if source is not None else None
        if self._has_token(node, "default"):
            target = node.child_by_field_name("declaration") or node.child_by_field_name("value")
            declaration = self.convert(target)
            if declaration is None:
                return None
            return ExportDefaultDeclaration(declaration)
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            converted = self.convert(declaration)
            if converted is None:
                return None
            return ExportNamedDeclaration(converted)
        for child in node.named_children:
            if child.type == "export_clause":
                specifiers = []
                for spec in child.named_children:
                    if spec.type != "export_specifier" or self._has_token(spec, "type"):
                        continue
                    name = self.text(spec.child_by_field_name("name"))
                    alias = spec.child_by_field_name("alias")
                    specifiers.append(
                        ExportSpecifier(name, self.text(alias) if alias is not None else name)
                    )
                return ExportNamedDeclaration(None, specifiers, source_text)
            if child.type == "namespace_export":
                exported = [c for c in child.named_children if c.type in ("identifier", "string")]
                return ExportAllDeclaration(source_text, self.text(exported[0]))
        if self._has_token(node, "*") and source_text is not None:
            return ExportAllDeclaration(source_text)
        return self.opaque(node)

    # -- declarations -------------------------------------------------------

    def _convert_lexical_declaration(self, node):
        kind = next(c.type for c in node.children if not c.is_named)
        return self._variable_declaration(node, kind)

    def _convert_variable_declaration(self, node):
        return self._variable_declaration(node, "var")

    def _variable_declaration(self, node, kind: str) -> VariableDeclaration:
        declarators = []
        for child in node.named_children:
            if child.type != "variable_declarator":
                continue
            value = child.child_by_field_name("value")
            declarators.append(
                VariableDeclarator(
                    self.pattern(child.child_by_field_name("name")),
                    self.convert(value) if value is not None else None,
                )
            )
        return VariableDeclaration(kind, declarators)

    def _function_parts(self, node):
        name = node.child_by_field_name("name")
        return dict(
            id=Identifier(self.text(name)) if name is not None else None,
            params=self.params(node.child_by_field_name("parameters")),
            body=self._block(node.child_by_field_name("body"), function_body=True),
            is_async=self._has_token(node, "async"),
            generator=self._has_token(node, "*") or node.type.startswith("generator_"),
        )

    def _convert_function_declaration(self, node):
        if node.child_by_field_name("body") is None:
            return None
        return FunctionDeclaration(**self._function_parts(node))

    _convert_generator_function_declaration = _convert_function_declaration

    def _convert_function_expression(self, node):
        return FunctionExpression(**self._function_parts(node))

    _convert_function = _convert_function_expression
    _convert_generator_function = _convert_function_expression

    def _convert_arrow_function(self, node):
        single = node.child_by_field_name("parameter")
        if single is not None:
            params = [self.pattern(single)]
        else:
            params = self.params(node.child_by_field_name("parameters"))
        body = node.child_by_field_name("body")
        if body.type == "statement_block":
            converted = self._block(body, function_body=True)
        else:
            converted = self.convert(body)
        return ArrowFunctionExpression(params, converted, self._has_token(node, "async"))

    def params(self, node) -> list:
        if node is None:
            return []
        params = []
        for child in self._named(node):
            param = self._param(child)
            if param is not None:
                params.append(param)
        return params

    def _param(self, node):
        if node.type in ("required_parameter", "optional_parameter"):
            pattern = node.child_by_field_name("pattern")
            if pattern is None or pattern.type == "this":
                return None
            converted = self.pattern(pattern)
            value = node.child_by_field_name("value")
            if value is not None:
                return AssignmentPattern(converted, self.convert(value))
            return converted
        return self.pattern(node)

    def _class_parts(self, node):
        name = node.child_by_field_name("name")
        superclass = None
        for child in node.named_children:
            if child.type != "class_heritage":
                continue
            for clause in self._named(child):
                if clause.type == "extends_clause":
                    value = clause.child_by_field_name("value")
                    superclass = self.convert(value if value is not None else self._named(clause)[0])
                else:
                    superclass = self.convert(clause)
                break
        members = []
        for member in self._named(node.child_by_field_name("body")):
            converted = self.convert(member)
            if converted is None:
                continue
            if isinstance(converted, Opaque) and self._has_token(member, "declare"):
                continue
            members.append(converted)
        return dict(
            id=Identifier(self.text(name)) if name is not None else None,
            superclass=superclass,
            body=members,
        )

    def _convert_class_declaration(self, node):
        return ClassDeclaration(**self._class_parts(node))

    _convert_abstract_class_declaration = _convert_class_declaration

    def _convert_class(self, node):
        return ClassExpression(**self._class_parts(node))

    def _convert_method_definition(self, node):
        modifiers = []
        for child in node.children:
            if child.type == "decorator" or child.type in DROPPED_TYPES:
                continue
            if child.is_named:
                break
            if child.type in ("static", "get", "set"):
                modifiers.append(child.type)
        name = node.child_by_field_name("name")
        computed = name.type == "computed_property_name"
        key = self._first_expression(name) if computed else Literal(self.text(name))
        value = FunctionExpression(
            None,
            self.params(node.child_by_field_name("parameters")),
            self._block(node.child_by_field_name("body"), function_body=True),
            is_async=self._has_token(node, "async"),
            generator=self._has_token(node, "*"),
        )
        return MethodDefinition(modifiers, key, value, computed)

    # -- statements with scopes ---------------------------------------------

    def _convert_for_in_statement(self, node):
        kind = node.child_by_field_name("kind")
        operator = node.child_by_field_name("operator")
        if operator is not None:
            op = self.text(operator)
        else:
            op = "of" if self._has_token(node, "of") else "in"
        left = node.child_by_field_name("left")
        return ForInStatement(
            self.text(kind) if kind is not None else None,
            self.pattern(left),
            self.convert(node.child_by_field_name("right")),
            self.convert(node.child_by_field_name("body")),
            op,
            self._has_token(node, "await"),
        )

    _convert_for_of_statement = _convert_for_in_statement

    def _convert_catch_clause(self, node):
        param = node.child_by_field_name("parameter")
        return CatchClause(
            self.pattern(param) if param is not None else None,
            self._block(node.child_by_field_name("body")),
        )

    # -- expressions --------------------------------------------------------

    def _convert_identifier(self, node):
        return Identifier(self.text(node))

    _convert_shorthand_property_identifier = _convert_identifier

    def _convert_parenthesized_expression(self, node):
        inner = self._first_expression(node)
        if inner is None:
            return self.opaque(node)
        return ParenthesizedExpression(inner)

    def _convert_await_expression(self, node):
        return AwaitExpression(self._first_expression(node))

    def _convert_assignment_expression(self, node):
        return AssignmentExpression(
            "=",
            self.pattern(node.child_by_field_name("left")),
            self.convert(node.child_by_field_name("right")),
        )

    def _convert_augmented_assignment_expression(self, node):
        operator = node.child_by_field_name("operator")
        if operator is None:
            return self.opaque(node)
        return AssignmentExpression(
            self.text(operator),
            self.convert(node.child_by_field_name("left")),
            self.convert(node.child_by_field_name("right")),
        )

    def _convert_member_expression(self, node):
        prop = node.child_by_field_name("property")
        return MemberExpression(
            self.convert(node.child_by_field_name("object")),
            Literal(self.text(prop)),
            computed=False,
            optional=node.child_by_field_name("optional_chain") is not None,
        )

    def _convert_subscript_expression(self, node):
        return MemberExpression(
            self.convert(node.child_by_field_name("object")),
            self.convert(node.child_by_field_name("index")),
            computed=True,
            optional=node.child_by_field_name("optional_chain") is not None,
        )

    def _convert_call_expression(self, node):
        arguments = node.child_by_field_name("arguments")
        if arguments is None or arguments.type != "arguments":
            return self.opaque(node)
        return CallExpression(
            self.convert(node.child_by_field_name("function")),
            [self.convert(arg) for arg in self._named(arguments)],
            optional=node.child_by_field_name("optional_chain") is not None,
        )

    def _convert_spread_element(self, node):
        return SpreadElement(self._first_expression(node))

    def _elements(self, node, convert) -> list:
        elements = []
        expecting = True
        for child in node.children:
            if child.type in DROPPED_TYPES:
                continue
            if not child.is_named:
                if child.type == ",":
                    if expecting:
                        elements.append(None)
                    expecting = True
                continue
            elements.append(convert(child))
            expecting = False
        return elements

    def _convert_array(self, node):
        return ArrayExpression(self._elements(node, self.convert))

    def _convert_object(self, node):
        properties = []
        for child in self._named(node):
            if child.type == "pair":
                properties.append(self._pair(child, self.convert))
            elif child.type == "shorthand_property_identifier":
                name = self.text(child)
                properties.append(Property(Literal(name), Identifier(name), shorthand=True))
            else:
                properties.append(self.convert(child))
        return ObjectExpression(properties)

    def _pair(self, node, convert) -> Property:
        key = node.child_by_field_name("key")
        value = convert(node.child_by_field_name("value"))
        if key.type == "computed_property_name":
            return Property(self._first_expression(key), value, computed=True)
        return Property(Literal(self.text(key)), value)

    def _convert_template_string(self, node):
        parts: list = []
        cursor = node.start_byte
        for child in node.named_children:
            if child.type != "template_substitution":
                continue
            inner = self._named(child)
            if not inner:
                continue
            parts.append(self.slice(cursor, inner[0].start_byte))
            parts.append(self.convert(inner[0]))
            cursor = inner[0].end_byte
        parts.append(self.slice(cursor, node.end_byte))
        return Opaque(node.type, parts)

    # -- JSX ----------------------------------------------------------------

    def _jsx_tag(self, node):
        name = node.child_by_field_name("name")
        if name is None:
            return self.opaque(node)
        return self.opaque(node, override=(name, self._jsx_name(name)))

    def _jsx_name(self, name):
        # Lowercase tags are intrinsic elements, not variable references.
        if name.type == "identifier":
            text = self.text(name)
            if text[:1].islower():
                return Literal(text)
            return Identifier(text)
        if name.type == "nested_identifier":
            first, *rest = name.named_children
            if first.type == "nested_identifier":
                head = self._jsx_name(first)
            else:
                head = Identifier(self.text(first))
            parts = [head]
            for item in rest:
                parts.extend([".", Literal(self.text(item))])
            return Opaque(name.type, parts)
        if name.type == "jsx_namespace_name":
            return Literal(self.text(name))
        return self.convert(name)

    _convert_jsx_opening_element = _jsx_tag
    _convert_jsx_closing_element = _jsx_tag
    _convert_jsx_self_closing_element = _jsx_tag

    # -- patterns -----------------------------------------------------------

    def pattern(self, node):
        if node is None:
            return None
        kind = node.type
        if kind in TYPE_WRAPPERS:
            return self.pattern(self._named(node)[0])
        if kind in ("identifier", "shorthand_property_identifier_pattern"):
            return Identifier(self.text(node))
        if kind == "object_pattern":
            return ObjectPattern([self._object_pattern_property(c) for c in self._named(node)])
        if kind == "array_pattern":
            return ArrayPattern(self._elements(node, self.pattern))
        if kind in ("assignment_pattern", "object_assignment_pattern"):
            return AssignmentPattern(
                self.pattern(node.child_by_field_name("left")),
                self.convert(node.child_by_field_name("right")),
            )
        if kind == "rest_pattern":
            return RestElement(self.pattern(self._named(node)[0]))
        if kind in ("required_parameter", "optional_parameter"):
            return self._param(node)
        return self.convert(node)

    def _object_pattern_property(self, node):
        kind = node.type
        if kind == "pair_pattern":
            return self._pair(node, self.pattern)
        if kind == "rest_pattern":
            return RestElement(self.pattern(self._named(node)[0]))
        if kind == "shorthand_property_identifier_pattern":
            name = self.text(node)
            return Property(Literal(name), Identifier(name), shorthand=True)
        if kind == "object_assignment_pattern":
            left = node.child_by_field_name("left")
            value = self.pattern(node)
            if left.type == "shorthand_property_identifier_pattern":
                return Property(Literal(self.text(left)), value, shorthand=True)
            return value
        return self.pattern(node)


__all__ = ["parse", "language_for", "TYPESCRIPT_EXTENSIONS"]
