"""Tree to source printing.

Layout is canonical rather than source-preserving: one statement per line,
two-space indentation, and single-line lists.  Only :class:`Opaque` nodes
reproduce their original spelling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .nodes import (
    ClassDeclaration,
    ClassExpression,
    FunctionDeclaration,
    FunctionExpression,
    MethodDefinition,
)

INDENT = "  "


@dataclass
class PrintResult:
    text: str
    source_map: Optional[dict] = None


def print_module(program) -> PrintResult:
    return PrintResult(generate(program))


def generate(node, indent: int = 0) -> str:
    return _Printer().visit(node, indent)


class _Printer:
    def visit(self, node, indent: int) -> str:
        if node is None:
            return ""
        if isinstance(node, str):
            return node
        method = getattr(self, "visit_" + node.type_name)
        return method(node, indent)

    def _join(self, items, indent: int, sep: str = ", ") -> str:
        return sep.join(self.visit(item, indent) for item in items)

    def _statements(self, items, indent: int) -> list[str]:
        pad = INDENT * indent
        return [pad + self.visit(item, indent) for item in items]

    # -- module -------------------------------------------------------------

    def visit_Program(self, node, indent):
        lines = []
        if node.hashbang:
            lines.append(node.hashbang)
        lines.extend(self.visit(d, indent) for d in node.directives)
        lines.extend(self._statements(node.body, indent))
        return "\n".join(lines) + ("\n" if lines else "")

    def visit_Directive(self, node, indent):
        return node.raw + ";"

    def visit_Identifier(self, node, indent):
        return node.name

    def visit_Literal(self, node, indent):
        return node.raw

    def visit_Opaque(self, node, indent):
        return "".join(self.visit(part, indent) for part in node.parts)

    def visit_ImportDeclaration(self, node, indent):
        clause = []
        named = []
        for spec in node.specifiers:
            if spec.type_name == "ImportSpecifier":
                named.append(self.visit(spec, indent))
            else:
                clause.append(self.visit(spec, indent))
        if named:
            clause.append("{ " + ", ".join(named) + " }")
        text = "import "
        if clause:
            text += ", ".join(clause) + " from "
        text += node.source
        if node.attributes:
            text += " " + node.attributes
        return text + ";"

    def visit_ImportSpecifier(self, node, indent):
        if node.imported == node.local.name:
            return node.imported
        return f"{node.imported} as {node.local.name}"

    def visit_ImportDefaultSpecifier(self, node, indent):
        return node.local.name

    def visit_ImportNamespaceSpecifier(self, node, indent):
        return "* as " + node.local.name

    def visit_ExportSpecifier(self, node, indent):
        if node.local == node.exported:
            return node.local
        return f"{node.local} as {node.exported}"

    def visit_ExportNamedDeclaration(self, node, indent):
        if node.declaration is not None:
            return "export " + self.visit(node.declaration, indent)
        text = "export {"
        if node.specifiers:
            text += " " + self._join(node.specifiers, indent) + " "
        text += "}"
        if node.source:
            text += " from " + node.source
        return text + ";"

    def visit_ExportDefaultDeclaration(self, node, indent):
        text = "export default " + self.visit(node.declaration, indent)
        if isinstance(node.declaration, _SELF_TERMINATED):
            return text
        return text + ";"

    def visit_ExportAllDeclaration(self, node, indent):
        text = "export * "
        if node.exported:
            text += f"as {node.exported} "
        return text + "from " + node.source + ";"

    # -- statements ---------------------------------------------------------

    def visit_BlockStatement(self, node, indent):
        if not node.body and not node.directives:
            return "{}"
        inner = indent + 1
        lines = [INDENT * inner + self.visit(d, inner) for d in node.directives]
        lines.extend(self._statements(node.body, inner))
        return "{\n" + "\n".join(lines) + "\n" + INDENT * indent + "}"

    def visit_ExpressionStatement(self, node, indent):
        return self.visit(node.expression, indent) + ";"

    def visit_ReturnStatement(self, node, indent):
        if node.argument is None:
            return "return;"
        return "return " + self.visit(node.argument, indent) + ";"

    def visit_VariableDeclaration(self, node, indent):
        return node.kind + " " + self._join(node.declarations, indent) + ";"

    def visit_VariableDeclarator(self, node, indent):
        text = self.visit(node.id, indent)
        if node.init is not None:
            text += " = " + self.visit(node.init, indent)
        return text

    def visit_ForInStatement(self, node, indent):
        text = "for " + ("await " if node.is_await else "") + "("
        if node.kind:
            text += node.kind + " "
        text += self.visit(node.left, indent)
        text += f" {node.operator} " + self.visit(node.right, indent) + ") "
        return text + self.visit(node.body, indent)

    def visit_CatchClause(self, node, indent):
        text = "catch "
        if node.param is not None:
            text += "(" + self.visit(node.param, indent) + ") "
        return text + self.visit(node.body, indent)

    # -- functions and classes ----------------------------------------------

    def _params(self, params, indent):
        return "(" + self._join(params, indent) + ")"

    def _function(self, node, indent):
        text = "async " if node.is_async else ""
        text += "function"
        if node.generator:
            text += "*"
        if node.id is not None:
            text += " " + node.id.name
        return text + self._params(node.params, indent) + " " + self.visit(node.body, indent)

    visit_FunctionDeclaration = _function
    visit_FunctionExpression = _function

    def visit_ArrowFunctionExpression(self, node, indent):
        text = "async " if node.is_async else ""
        return text + self._params(node.params, indent) + " => " + self.visit(node.body, indent)

    def visit_MethodDefinition(self, node, indent):
        fn = node.value
        text = "".join(m + " " for m in node.modifiers)
        if fn.is_async:
            text += "async "
        if fn.generator:
            text += "*"
        key = self.visit(node.key, indent)
        text += "[" + key + "]" if node.computed else key
        return text + self._params(fn.params, indent) + " " + self.visit(fn.body, indent)

    def _class(self, node, indent):
        text = "class"
        if node.id is not None:
            text += " " + node.id.name
        if node.superclass is not None:
            text += " extends " + self.visit(node.superclass, indent)
        if not node.body:
            return text + " {}"
        inner = indent + 1
        lines = []
        for member in node.body:
            line = INDENT * inner + self.visit(member, inner)
            if not isinstance(member, MethodDefinition) and not line.endswith(("}", ";")):
                line += ";"
            lines.append(line)
        return text + " {\n" + "\n".join(lines) + "\n" + INDENT * indent + "}"

    visit_ClassDeclaration = _class
    visit_ClassExpression = _class

    # -- expressions --------------------------------------------------------

    def visit_ArrayExpression(self, node, indent):
        text = ", ".join(
            "" if item is None else self.visit(item, indent) for item in node.elements
        )
        if node.elements and node.elements[-1] is None:
            text += ","
        return "[" + text + "]"

    visit_ArrayPattern = visit_ArrayExpression

    def visit_ObjectExpression(self, node, indent):
        if not node.properties:
            return "{}"
        return "{ " + self._join(node.properties, indent) + " }"

    visit_ObjectPattern = visit_ObjectExpression

    def visit_Property(self, node, indent):
        value = self.visit(node.value, indent)
        if node.shorthand:
            return value
        key = self.visit(node.key, indent)
        if node.computed:
            key = "[" + key + "]"
        return key + ": " + value

    def visit_SpreadElement(self, node, indent):
        return "..." + self.visit(node.argument, indent)

    visit_RestElement = visit_SpreadElement

    def visit_CallExpression(self, node, indent):
        callee = self.visit(node.callee, indent)
        if node.optional:
            callee += "?."
        return callee + "(" + self._join(node.arguments, indent) + ")"

    def visit_MemberExpression(self, node, indent):
        obj = self.visit(node.object, indent)
        prop = self.visit(node.property, indent)
        if node.computed:
            return obj + ("?.[" if node.optional else "[") + prop + "]"
        return obj + ("?." if node.optional else ".") + prop

    def visit_AssignmentExpression(self, node, indent):
        return (
            self.visit(node.left, indent)
            + f" {node.operator} "
            + self.visit(node.right, indent)
        )

    def visit_AssignmentPattern(self, node, indent):
        return self.visit(node.left, indent) + " = " + self.visit(node.right, indent)

    def visit_AwaitExpression(self, node, indent):
        return "await " + self.visit(node.argument, indent)

    def visit_ParenthesizedExpression(self, node, indent):
        return "(" + self.visit(node.expression, indent) + ")"


_SELF_TERMINATED = (FunctionDeclaration, FunctionExpression, ClassDeclaration, ClassExpression)


__all__ = ["PrintResult", "print_module", "generate", "INDENT"]
