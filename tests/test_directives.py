import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import (
    DirectiveConflictError,
    FunctionDeclaration,
    Tier,
    function_marker,
    module_tier,
    parse,
    scan_directives,
    strip_function_directive,
    strip_module_directives,
    walk,
)


def test_module_tier_from_prologue():
    assert module_tier(parse('"use client";\nexport const a = 1;\n')) is Tier.CLIENT
    assert module_tier(parse("'use server';\nexport const a = 1;\n")) is Tier.SERVER
    assert module_tier(parse("export const a = 1;\n")) is None


def test_module_with_both_markers_conflicts():
    with pytest.raises(DirectiveConflictError):
        module_tier(parse('"use client";\n"use server";\n'))


def test_function_with_both_markers_conflicts():
    program = parse('function f() {\n  "use server";\n  "use client";\n}\n')
    function = next(n for n in walk(program) if isinstance(n, FunctionDeclaration))
    with pytest.raises(DirectiveConflictError):
        function_marker(function)


def test_top_level_server_function_is_registered_in_place():
    scan = scan_directives(parse('export async function save() {\n  "use server";\n}\n'))
    assert list(scan.in_place_actions) == ["save"]
    assert scan.actions == []
    assert scan.tier is Tier.SERVER
    assert scan.module_tier is None


def test_nested_server_function_becomes_inline_action():
    code = """
    export function Form({ id }) {
      const submit = async () => {
        "use server";
        return id;
      };
      return submit;
    }
    """
    scan = scan_directives(parse(code))
    assert scan.in_place_actions == {}
    assert len(scan.actions) == 1
    assert scan.actions[0].free_variables == ["id"]
    assert "Form" in scan.top_level_functions


def test_function_inside_larger_value_is_inline():
    code = """
    export const actions = wrap(() => {
      "use server";
    });
    """
    scan = scan_directives(parse(code))
    assert len(scan.actions) == 1
    assert scan.in_place_actions == {}


def test_methods_are_never_extracted():
    code = """
    export class Store {
      async save() {
        "use server";
      }
    }
    """
    scan = scan_directives(parse(code))
    assert scan.actions == []
    assert scan.in_place_actions == {}
    assert scan.has_markers
    assert scan.function_tier is Tier.SERVER


def test_client_module_with_server_function_conflicts():
    code = """
    "use client";
    export function Form() {
      const act = () => {
        "use server";
      };
    }
    """
    with pytest.raises(DirectiveConflictError):
        scan_directives(parse(code))


def test_server_module_with_client_function_conflicts():
    code = """
    "use server";
    export function Widget() {
      "use client";
    }
    """
    with pytest.raises(DirectiveConflictError):
        scan_directives(parse(code))


def test_client_function_markers_set_function_tier():
    scan = scan_directives(parse('export function Widget() {\n  "use client";\n}\n'))
    assert scan.function_tier is Tier.CLIENT
    assert scan.actions == []
    assert scan.in_place_actions == {}


def test_strip_module_directives_keeps_others():
    program = parse('"use server";\n"use strict";\nexport const a = 1;\n')
    assert strip_module_directives(program, Tier.SERVER) == 1
    assert [d.value for d in program.directives] == ["use strict"]
    assert strip_module_directives(program, Tier.SERVER) == 0


def test_strip_function_directive():
    program = parse('function f() {\n  "use server";\n  return 1;\n}\n')
    function = next(n for n in walk(program) if isinstance(n, FunctionDeclaration))
    strip_function_directive(function, Tier.SERVER)
    assert function.body.directives == []
    assert function_marker(function) is None
