"""Import and helper injection with per-module deduplication."""

from __future__ import annotations

import json
import logging
import re
from typing import Callable, Iterable, TypeVar

from .nodes import (
    ExportSpecifier,
    Identifier,
    ImportDeclaration,
    ImportSpecifier,
    Node,
    Program,
    const_declaration,
    walk,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


class OnceCache:
    """Memoise side-effecting factories for the lifetime of one transform."""

    def __init__(self):
        self._values: dict[str, object] = {}

    def once(self, key: str, factory: Callable[[], T]) -> T:
        if key in self._values:
            return self._values[key]  # type: ignore[return-value]
        value = factory()
        self._values[key] = value
        return value

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


def _to_identifier(name: str) -> str:
    name = re.sub(r"[^\w$]", "", name)
    if not name:
        return "temp"
    if name[0].isdigit():
        return "_" + name
    return name


class UidGenerator:
    """Produce ``_name``, ``_name2``, ... unique across a whole module."""

    def __init__(self, names: Iterable[str] = ()):
        self.used = set(names)

    @classmethod
    def from_program(cls, program: Program) -> "UidGenerator":
        names = set()
        for node in walk(program):
            if isinstance(node, Identifier):
                names.add(node.name)
            elif isinstance(node, ImportSpecifier):
                names.add(node.imported)
            elif isinstance(node, ExportSpecifier):
                names.add(node.local_name)
                names.add(node.exported_name)
        return cls(names)

    def reserve(self, name: str) -> None:
        self.used.add(name)

    def generate(self, hint: str) -> str:
        base = re.sub(r"^_+", "", _to_identifier(hint))
        base = re.sub(r"\d+$", "", base) or "temp"
        counter = 1
        while True:
            uid = "_" + base + (str(counter) if counter > 1 else "")
            counter += 1
            if uid not in self.used:
                break
        self.used.add(uid)
        return uid


class ImportInjector:
    """Add named imports and helper declarations to the head of a module.

    Helpers always end up above imports.  New import declarations follow
    the ones injected earlier in the same run, and specifiers for a source
    already injected in this run are merged into that declaration.
    """

    def __init__(self, program: Program, cache: OnceCache, uids: UidGenerator):
        self.program = program
        self.cache = cache
        self.uids = uids
        self._head = 0
        self._declarations: dict[str, ImportDeclaration] = {}

    def reset(self) -> None:
        """Forget positions after the module body was replaced wholesale."""
        self._head = 0
        self._declarations.clear()

    def add_named(self, name: str, source: str) -> str:
        """Import ``name`` from ``source`` once and return its local name."""
        key = f"import {{ {name} }} from {json.dumps(source)}"
        return self.cache.once(key, lambda: self._add_named(name, source))

    def _add_named(self, name: str, source: str) -> str:
        local = self.uids.generate(name)
        specifier = ImportSpecifier(name, Identifier(local))
        declaration = self._declarations.get(source)
        if declaration is None:
            declaration = ImportDeclaration([specifier], json.dumps(source))
            self.program.body.insert(self._head, declaration)
            self._head += 1
            self._declarations[source] = declaration
        else:
            declaration.specifiers.append(specifier)
        log.debug("imported %s as %s from %s", name, local, source)
        return local

    def push_helper(self, key: str, name: str, init: Node) -> str:
        """Declare ``var _name = init`` at the very top of the module once."""

        def build() -> str:
            uid = self.uids.generate(name)
            self.program.body.insert(0, const_declaration(uid, init, kind="var"))
            self._head += 1
            log.debug("added helper %s", uid)
            return uid

        return self.cache.once(key, build)


__all__ = ["OnceCache", "UidGenerator", "ImportInjector"]
