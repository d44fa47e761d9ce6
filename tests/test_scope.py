import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import (
    ArrowFunctionExpression,
    FunctionDeclaration,
    InvariantError,
    Identifier,
    build_scopes,
    free_variables,
    parse,
    walk,
)


def function_named(program, name):
    return next(
        n
        for n in walk(program)
        if isinstance(n, FunctionDeclaration) and n.id is not None and n.id.name == name
    )


def first_arrow(program):
    return next(n for n in walk(program) if isinstance(n, ArrowFunctionExpression))


def captures(code, name=None):
    program = parse(code)
    tree = build_scopes(program)
    target = function_named(program, name) if name else first_arrow(program)
    return free_variables(tree, target)


def test_captures_in_first_reference_order():
    code = """
    function outer(id) {
      const local = 1;
      function action() {
        return local + id + local + globalValue;
      }
    }
    """
    assert captures(code, "action") == ["local", "id"]


def test_parameters_shadow_outer_names():
    code = """
    function outer(a) {
      function inner(a) {
        return a;
      }
    }
    """
    assert captures(code, "inner") == []


def test_var_is_hoisted_to_function_scope():
    code = """
    function outer() {
      if (ready) {
        var flag = 1;
      }
      function inner() {
        return flag + later;
      }
      var later = 2;
    }
    """
    assert captures(code, "inner") == ["flag", "later"]


def test_block_scoped_bindings_are_captured():
    code = """
    function outer() {
      {
        let b = 1;
        const f = () => b;
      }
    }
    """
    assert captures(code) == ["b"]


def test_catch_parameter_is_captured():
    code = """
    function outer() {
      try {
        run();
      } catch (err) {
        const f = () => err;
      }
    }
    """
    assert captures(code) == ["err"]


def test_module_bindings_and_globals_are_not_captured():
    code = """
    import { db } from "./db";
    const top = 1;
    function outer() {
      const f = () => db.save(top, window);
    }
    """
    assert captures(code) == []


def test_locals_of_the_function_are_not_captured():
    code = """
    function outer(x) {
      const f = (y) => {
        const z = y;
        return z;
      };
    }
    """
    assert captures(code) == []


def test_declarations_map_to_bindings():
    program = parse("const a = 1;\nfunction b() { let c; }\n")
    tree = build_scopes(program)
    ident = next(n for n in walk(program) if isinstance(n, Identifier) and n.name == "a")
    binding = tree.binding_of(ident)
    assert binding.name == "a"
    assert binding.scope is tree.root
    assert binding.kind == "const"
    assert tree.root.lookup("b").kind == "hoisted"
    assert tree.root.lookup("c") is None


def test_scope_ids_are_stable():
    code = "function a() { { let x; } }\n"
    first = [s.stable_id() for s in build_scopes(parse(code)).all_scopes()]
    second = [s.stable_id() for s in build_scopes(parse(code)).all_scopes()]
    assert first == second
    assert len(set(first)) == len(first)


def test_unknown_function_is_rejected():
    tree = build_scopes(parse("const a = 1;\n"))
    stray = first_arrow(parse("const f = () => 1;\n"))
    with pytest.raises(InvariantError):
        free_variables(tree, stray)
