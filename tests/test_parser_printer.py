import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import (
    FunctionDeclaration,
    ParseError,
    Tier,
    generate,
    language_for,
    parse,
    print_module,
    walk,
)


def roundtrip(code, file_id="module.js"):
    return print_module(parse(code, file_id)).text


def test_type_annotations_are_dropped():
    assert roundtrip("const x: number = 1;", "a.ts") == "const x = 1;\n"


def test_type_only_declarations_are_dropped():
    code = """
    import type { Props } from "./types";
    interface Shape { size: number }
    type Alias = string;
    export const size = 2;
    """
    assert roundtrip(code, "shape.ts") == "export const size = 2;\n"


def test_declaration_keyword_is_separate_from_node_type():
    program = parse("let a = 1;\nfor (const b of items) {}\n", "loop.js")
    declaration, loop = program.body
    assert (declaration.type_name, declaration.kind) == ("VariableDeclaration", "let")
    assert (loop.type_name, loop.kind) == ("ForInStatement", "const")
    assert print_module(program).text.startswith("let a = 1;\nfor (const b of items)")


def test_directive_prologue_is_kept():
    program = parse('"use client";\n"use strict";\nexport const a = 1;\n')
    assert [d.value for d in program.directives] == ["use client", "use strict"]
    assert generate(program) == '"use client";\n"use strict";\nexport const a = 1;\n'


def test_string_after_first_statement_is_not_a_directive():
    program = parse('const a = 1;\n"use server";\n')
    assert program.directives == []
    assert len(program.body) == 2


def test_function_body_prologue():
    program = parse('function save() {\n  "use server";\n  return 1;\n}\n')
    function = next(n for n in walk(program) if isinstance(n, FunctionDeclaration))
    assert [d.value for d in function.body.directives] == [Tier.SERVER.value]
    assert len(function.body.body) == 1


def test_syntax_error_reports_location():
    with pytest.raises(ParseError) as info:
        parse("const = ;\n", "broken.js")
    assert info.value.file_id == "broken.js"
    assert info.value.line == 1
    assert str(info.value).startswith("broken.js:1:")


def test_jsx_in_ts_file_falls_back_to_tsx():
    program = parse("export const A = () => <div className=\"a\">hi</div>;\n", "view.ts")
    assert "<div" in generate(program)


def test_grammar_by_extension():
    assert language_for("a.ts") is language_for("b.mts")
    assert language_for("a.tsx") is language_for("b.js")
    assert language_for("a.ts") is not language_for("a.js")


@pytest.mark.parametrize(
    "code",
    [
        'import React, { useState as useLocal } from "react";\nexport * as ns from "./ns";\n',
        "export default class Store {\n  static count = 0;\n  async load(id) {\n    return this.items[id];\n  }\n}\n",
        "for (const key in source) {\n  target[key] = source[key];\n}\n",
        "try {\n  run();\n} catch ({ message }) {\n  report(message);\n}\n",
        "const { a, b: [c, ...d] = [], ...rest } = value;\n",
    ],
)
def test_printing_is_stable(code):
    once = roundtrip(code)
    assert roundtrip(once) == once
