import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import (
    FunctionDeclaration,
    HoistEngine,
    InlineAction,
    InvariantError,
    RewriteContext,
    parse,
    print_module,
)
from conftest import normalize


def hoist_declaration(code, options, prepare=None):
    program = parse(code, "use-server.js")
    function = program.body[0]
    assert isinstance(function, FunctionDeclaration)
    if prepare is not None:
        prepare(function)
    engine = HoistEngine(RewriteContext(program, "use-server.js", options))
    name = engine.hoist(InlineAction(function, []))
    return program, name


def test_module_level_declaration_becomes_var_alias(options):
    program, name = hoist_declaration(
        """
        function save(form) {
          "use server";
          return form;
        }
        """,
        options,
    )
    assert name == "_$$INLINE_ACTION"
    assert print_module(program).text == normalize(
        """
        import { $$server as _$$server } from "mwap/runtime/server";
        export const _$$INLINE_ACTION = _$$server(async (form) => {
          {
            return form;
          }
        }, "use server:use-server.js", "_$$INLINE_ACTION");
        var save = _$$INLINE_ACTION;
        """
    )


def test_declaration_without_name_is_rejected(options):
    def drop_name(function):
        function.id = None

    with pytest.raises(InvariantError, match="Expected a function with an id"):
        hoist_declaration(
            """
            function save() {
              "use server";
            }
            """,
            options,
            prepare=drop_name,
        )
