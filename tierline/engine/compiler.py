"""Transform pipeline for ``"use client"`` / ``"use server"`` modules.

``transform`` is the single entry point used by the CLI and the build hook:
probe the text, parse, rewrite for the requested target and print.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import re
from typing import Callable, Iterable, Optional

from ..constants import DIRECTIVE_PROBE, TARGETS
from ..options import TransformOptions
from .directives import ScanResult, scan_directives, strip_module_directives
from .errors import DefaultExportError
from .exports import ExportMap, ExportTracker
from .hoist import HoistEngine, RewriteContext
from .nodes import (
    ExportDefaultDeclaration,
    ExportNamedDeclaration,
    ExpressionStatement,
    Identifier,
    ObjectExpression,
    Program,
    Tier,
    call,
    const_declaration,
    string_literal,
)
from .parser import parse
from .printer import print_module
from .scope import build_scopes

log = logging.getLogger(__name__)

_PROBE = re.compile(DIRECTIVE_PROBE)


@dataclass
class TransformResult:
    code: str
    map: Optional[dict] = None
    directive: Optional[Tier] = None
    actions: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)


def replace_module(context: RewriteContext, exports: ExportMap, tier: Tier) -> list[str]:
    """Swap the module body for registered references to its exports."""

    if tier is Tier.SERVER and "default" in exports:
        raise DefaultExportError()
    program = context.program
    program.body.clear()
    context.injector.reset()
    file_ref = context.reference_id(tier)
    emitted = []
    for entry in exports:
        key = "default" if entry.is_default else (entry.local or entry.public)

        def emit(entry=entry):
            callee = context.register_import(tier)
            reference = call(
                Identifier(callee),
                ObjectExpression([]),
                string_literal(file_ref),
                string_literal(entry.public),
            )
            if entry.is_default:
                program.body.append(ExportDefaultDeclaration(reference))
            else:
                program.body.append(
                    ExportNamedDeclaration(const_declaration(entry.public, reference))
                )
            emitted.append(entry.public)

        context.cache.once(f"export:{key}", emit)
    log.debug("replaced module body with %s references: %s", tier.value, emitted)
    return emitted


def register_exports(
    context: RewriteContext, exports: ExportMap, candidates: Iterable[str]
) -> list[str]:
    """Append a server registration call for each export backed by a candidate."""

    candidates = set(candidates)
    program = context.program
    file_ref = context.reference_id(Tier.SERVER)
    registered = []
    for entry in exports:
        if entry.source is not None or entry.local is None or entry.local not in candidates:
            continue

        def emit(entry=entry):
            callee = context.register_import(Tier.SERVER)
            program.body.append(
                ExpressionStatement(
                    call(
                        Identifier(callee),
                        Identifier(entry.local),
                        string_literal(file_ref),
                        string_literal(entry.public),
                    )
                )
            )
            registered.append(entry.public)

        context.cache.once(f"export:{entry.local}", emit)
    log.debug("registered server exports: %s", registered)
    return registered


def server_transform(program: Program, file_id: str, options=None) -> TransformResult:
    """Rewrite ``program`` in place for the server bundle."""

    options = options or TransformOptions()
    tree = build_scopes(program)
    scan = scan_directives(program, tree)
    exports = ExportTracker().track(program)
    context = RewriteContext(program, file_id, options)
    result = TransformResult("", directive=scan.tier)

    if scan.module_tier is Tier.CLIENT:
        strip_module_directives(program, Tier.CLIENT)
        result.exports = replace_module(context, exports, Tier.CLIENT)
        return result

    if scan.module_tier is Tier.SERVER:
        strip_module_directives(program, Tier.SERVER)
        if "default" in exports:
            raise DefaultExportError()
    result.actions = HoistEngine(context).hoist_all(scan.actions)
    if scan.module_tier is Tier.SERVER:
        result.exports = register_exports(context, exports, scan.top_level_functions)
    elif scan.in_place_actions:
        result.exports = register_exports(context, exports, scan.in_place_actions)
    return result


def client_transform(program: Program, file_id: str, options=None) -> TransformResult:
    """Rewrite ``program`` in place for the client bundle.

    Function-scope markers are left alone; only the module prologue matters.
    """

    options = options or TransformOptions()
    scan = scan_directives(program, build_scopes(program))
    result = TransformResult("", directive=scan.module_tier)
    if scan.module_tier is Tier.SERVER:
        exports = ExportTracker().track(program)
        strip_module_directives(program, Tier.SERVER)
        context = RewriteContext(program, file_id, options)
        result.exports = replace_module(context, exports, Tier.SERVER)
    elif scan.module_tier is Tier.CLIENT:
        strip_module_directives(program, Tier.CLIENT)
    return result


def scan_source(code: str, file_id: str) -> Optional[ScanResult]:
    if not _PROBE.search(code):
        return None
    program = parse(code, file_id)
    return scan_directives(program, build_scopes(program))


def transform(
    code: str, file_id: str, options=None, target: str = "server"
) -> Optional[TransformResult]:
    """Transform one module; ``None`` means "leave the file as it is"."""

    if target not in TARGETS:
        raise ValueError(f"Unknown target {target!r}; expected one of {', '.join(TARGETS)}")
    if not _PROBE.search(code):
        return None
    program = parse(code, file_id)
    if target == "server":
        result = server_transform(program, file_id, options)
    else:
        result = client_transform(program, file_id, options)
    if result.directive is None:
        log.debug("%s: no directive after parsing", file_id)
        return None
    printed = print_module(program)
    result.code = printed.text
    result.map = printed.source_map
    log.info("%s: transformed for %s (%s)", file_id, target, result.directive.value)
    return result


def _compile(patterns) -> list:
    if patterns is None:
        return []
    if isinstance(patterns, (str, re.Pattern)):
        patterns = [patterns]
    return [re.compile(p) if isinstance(p, str) else p for p in patterns]


class TransformHook:
    """Build-pipeline adapter around :func:`transform`.

    ``include``/``exclude`` are regular expressions searched in the file id.
    With ``include`` set a file must match at least one of them; any
    ``exclude`` match skips the file.
    """

    def __init__(
        self,
        options=None,
        target: str = "server",
        include=None,
        exclude=None,
        ledger=None,
        module_id: Optional[Callable[[str], str]] = None,
    ):
        if target not in TARGETS:
            raise ValueError(f"Unknown target {target!r}")
        self.options = options or TransformOptions()
        self.target = target
        self.include = _compile(include)
        self.exclude = _compile(exclude)
        self.ledger = ledger
        self.module_id = module_id

    def accepts(self, file_id: str) -> bool:
        if self.include and not any(p.search(file_id) for p in self.include):
            return False
        return not any(p.search(file_id) for p in self.exclude)

    def __call__(self, code: str, file_id: str) -> Optional[TransformResult]:
        if not self.accepts(file_id):
            return None
        module_id = self.module_id(file_id) if self.module_id else file_id
        result = transform(code, module_id, self.options, self.target)
        if result is not None and self.ledger is not None:
            self.ledger.record(module_id, result.directive)
        return result

    async def atransform(self, code: str, file_id: str) -> Optional[TransformResult]:
        return await asyncio.to_thread(self, code, file_id)


__all__ = [
    "TransformResult",
    "TransformHook",
    "replace_module",
    "register_exports",
    "server_transform",
    "client_transform",
    "scan_source",
    "transform",
]
