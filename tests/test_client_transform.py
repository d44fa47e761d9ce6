import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import DefaultExportError, Tier, client_transform, parse, print_module
from conftest import normalize


def run(code, options, file_id="use-server.js"):
    program = parse(code, file_id)
    result = client_transform(program, file_id, options)
    return print_module(program).text, result


def test_server_module_is_replaced_by_references(client_options):
    actual, result = run(
        """
        "use server";
        import { Imported } from "third-party-imported";
        export { Exported } from "third-party-exported";
        export { Imported };
        export const varDeclaration = "varDeclaration";
        export const functionDeclaration = function functionDeclaration() {};
        export function Component() {}
        """,
        client_options,
    )
    assert actual == normalize(
        """
        import { $$server as _$$server } from "mwap/runtime/client";
        export const Exported = _$$server({}, "use server:use-server.js", "Exported");
        export const Imported = _$$server({}, "use server:use-server.js", "Imported");
        export const varDeclaration = _$$server({}, "use server:use-server.js", "varDeclaration");
        export const functionDeclaration = _$$server({}, "use server:use-server.js", "functionDeclaration");
        export const Component = _$$server({}, "use server:use-server.js", "Component");
        """
    )
    assert result.directive is Tier.SERVER


def test_server_module_with_default_export_is_rejected(client_options):
    with pytest.raises(DefaultExportError):
        run('"use server";\nexport default async function action() {}\n', client_options)


def test_client_module_only_loses_its_directive(client_options):
    code = """
    "use client";
    import { useState } from "react";
    export function Counter() {
      const [count, setCount] = useState(0);
      return count;
    }
    """
    actual, result = run(code, client_options, "counter.js")
    expected = normalize(code.replace('"use client";', ""))
    assert actual == expected
    assert result.directive is Tier.CLIENT
    assert result.exports == []


def test_function_markers_are_left_alone(client_options):
    code = """
    export function Form() {
      const act = () => {
        "use server";
        return 1;
      };
      return act;
    }
    """
    actual, result = run(code, client_options, "form.js")
    assert actual == normalize(code)
    assert result.directive is None
