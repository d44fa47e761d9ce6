import asyncio
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import ModuleLedger, Tier, TransformHook, scan_source, transform

SERVER_MODULE = '"use server";\nexport async function save() {}\n'


def test_transform_skips_sources_without_markers():
    assert transform("export const a = (", "broken.js") is None


def test_transform_returns_none_when_marker_is_not_a_directive():
    assert transform('const label = "use server";\n', "label.js") is None


def test_transform_rejects_unknown_target():
    with pytest.raises(ValueError):
        transform(SERVER_MODULE, "a.js", target="edge")


def test_transform_result(options):
    result = transform(SERVER_MODULE, "actions.js", options)
    assert result.directive is Tier.SERVER
    assert result.exports == ["save"]
    assert result.code.endswith('_$$server(save, "use server:actions.js", "save");\n')


def test_scan_source():
    assert scan_source("export const a = 1;\n", "a.js") is None
    assert scan_source(SERVER_MODULE, "a.js").module_tier is Tier.SERVER


def test_hook_filters(options):
    hook = TransformHook(options, include=r"\.js$", exclude=["node_modules/"])
    assert hook.accepts("app/actions.js")
    assert not hook.accepts("app/actions.ts")
    assert not hook.accepts("node_modules/pkg/actions.js")
    assert hook(SERVER_MODULE, "node_modules/pkg/actions.js") is None
    assert hook(SERVER_MODULE, "app/actions.js").directive is Tier.SERVER


def test_hook_records_ledger_and_module_id(options, tmp_path):
    ledger = ModuleLedger(str(tmp_path / "ledger.jsonl"))
    hook = TransformHook(options, ledger=ledger, module_id=lambda f: "./" + f)
    result = hook(SERVER_MODULE, "actions.js")
    assert '"use server:./actions.js"' in result.code
    assert ledger.load() == {"./actions.js": "use server"}


def test_async_transform(options):
    hook = TransformHook(options, target="client")

    async def run():
        return await asyncio.gather(
            hook.atransform(SERVER_MODULE, "a.js"),
            hook.atransform(SERVER_MODULE, "b.js"),
        )

    first, second = asyncio.run(run())
    assert '"use server:a.js"' in first.code
    assert '"use server:b.js"' in second.code


def test_hook_rejects_unknown_target():
    with pytest.raises(ValueError):
        TransformHook(target="edge")
