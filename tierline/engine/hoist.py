"""Hoisting of inline server actions.

Each nested ``"use server"`` function is lifted to a module-level export
wrapped in the server registration call.  Values it captured from enclosing
scopes travel as a bound first argument, produced lazily at the call site
and destructured again at the top of the hoisted body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import NamedTuple, Optional

from ..constants import (
    BOUND_ARGS_HELPER_NAME,
    CLOSURE_PARAM_NAME,
    INLINE_ACTION_NAME,
    LAZY_WRAPPER_VALUE_KEY,
)
from .closure import captured_values, deferred, lazy_wrapper
from .directives import InlineAction, strip_function_directive
from .errors import InvariantError
from .imports import ImportInjector, OnceCache, UidGenerator
from .nodes import (
    ArrayPattern,
    ArrowFunctionExpression,
    AwaitExpression,
    BlockStatement,
    ExportNamedDeclaration,
    FunctionDeclaration,
    Identifier,
    Node,
    Program,
    Tier,
    VariableDeclaration,
    VariableDeclarator,
    call,
    const_declaration,
    find_slot,
    insert_after,
    last_import_index,
    member,
    null_literal,
    replace_node,
    string_literal,
)

log = logging.getLogger(__name__)


class CryptoNames(NamedTuple):
    decrypt: str
    encrypt: str


@dataclass
class RewriteContext:
    """State owned by a single transform of a single module."""

    program: Program
    file_id: str
    options: object
    cache: OnceCache = field(default_factory=OnceCache)
    uids: Optional[UidGenerator] = None
    injector: Optional[ImportInjector] = None

    def __post_init__(self):
        if self.uids is None:
            self.uids = UidGenerator.from_program(self.program)
        if self.injector is None:
            self.injector = ImportInjector(self.program, self.cache, self.uids)

    def reference_id(self, tier: Tier) -> str:
        return self.cache.once(
            f"id:{tier.value}",
            lambda: self.options.id_generator(self.file_id, tier),
        )

    def register_import(self, tier: Tier) -> str:
        name = self.options.import_server if tier is Tier.SERVER else self.options.import_client
        return self.injector.add_named(name, self.options.import_from)

    def crypto_imports(self) -> Optional[CryptoNames]:
        encryption = self.options.encryption
        if encryption is None:
            return None
        decrypt = self.injector.add_named(encryption.decrypt_fn, encryption.import_source)
        encrypt = self.injector.add_named(encryption.encrypt_fn, encryption.import_source)
        return CryptoNames(decrypt, encrypt)

    def bound_args_helper(self) -> str:
        return self.injector.push_helper(
            "helper:bound-args", BOUND_ARGS_HELPER_NAME, lazy_wrapper()
        )


class HoistEngine:
    def __init__(self, context: RewriteContext):
        self.context = context

    @property
    def program(self) -> Program:
        return self.context.program

    def hoist_all(self, actions: list[InlineAction]) -> list[str]:
        return [self.hoist(action) for action in actions]

    def hoist(self, action: InlineAction) -> str:
        """Move ``action`` to module scope and rewrite its original site."""

        ctx = self.context
        function = action.function
        captured = action.free_variables
        file_ref = ctx.reference_id(Tier.SERVER)
        name = ctx.uids.generate(INLINE_ACTION_NAME)

        strip_function_directive(function, Tier.SERVER)
        body = function.body
        if not isinstance(body, BlockStatement):
            raise InvariantError("Expected a function with a block body")
        statements: list[Node] = [body]
        params = list(function.params)
        if captured:
            crypto = ctx.crypto_imports()
            closure = ctx.uids.generate(CLOSURE_PARAM_NAME)
            value: Node = member(Identifier(closure), LAZY_WRAPPER_VALUE_KEY)
            if crypto is not None:
                value = AwaitExpression(
                    call(
                        Identifier(crypto.decrypt),
                        AwaitExpression(value),
                        string_literal(file_ref),
                        string_literal(name),
                    )
                )
            pattern = ArrayPattern([Identifier(v) for v in captured])
            statements.insert(0, VariableDeclaration("var", [VariableDeclarator(pattern, value)]))
            params.insert(0, Identifier(closure))

        register = ctx.register_import(Tier.SERVER)
        hoisted = ArrowFunctionExpression(params, BlockStatement(statements), is_async=True)
        declaration = ExportNamedDeclaration(
            const_declaration(
                name,
                call(Identifier(register), hoisted, string_literal(file_ref), string_literal(name)),
            )
        )
        insert_after(self.program.body, last_import_index(self.program.body), declaration)
        action.name = name
        action.hoisted = declaration

        self._replace_site(function, name, captured, file_ref)
        log.debug("hoisted inline action %s (captures: %s)", name, ", ".join(captured) or "-")
        return name

    def replacement(self, name: str, captured: list[str], file_ref: str) -> Node:
        """Expression standing in for the hoisted function at its old site."""

        if not captured:
            return Identifier(name)
        ctx = self.context
        crypto = ctx.crypto_imports()
        carried: Node = captured_values(captured)
        if crypto is not None:
            carried = call(
                Identifier(crypto.encrypt),
                carried,
                string_literal(file_ref),
                string_literal(name),
            )
        carrier = deferred(carried, ctx.bound_args_helper())
        return call(member(Identifier(name), "bind"), null_literal(), carrier)

    def _replace_site(self, function: Node, name: str, captured: list[str], file_ref: str):
        if not isinstance(function, FunctionDeclaration):
            replace_node(self.program, function, self.replacement(name, captured, file_ref))
            return
        if function.id is None:
            raise InvariantError("Expected a function with an id")
        slot = find_slot(self.program, function)
        if slot is None:
            raise InvariantError(f"{function.id.name} is not part of this module")
        local = function.id.name
        parent = slot.parent
        # scan_directives keeps module-level sites in place, so only hand-built actions land here
        if parent is self.program or (
            isinstance(parent, ExportNamedDeclaration) and parent in self.program.body
        ):
            slot.set(const_declaration(local, Identifier(name), kind="var"))
        elif slot.index is not None and isinstance(parent, (BlockStatement, Program)):
            del parent.body[slot.index]
            parent.body.insert(
                0, const_declaration(local, self.replacement(name, captured, file_ref), kind="var")
            )
        else:
            slot.set(const_declaration(local, self.replacement(name, captured, file_ref), kind="var"))


__all__ = ["CryptoNames", "RewriteContext", "HoistEngine"]
