import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import (
    IdGenerator,
    ImportInjector,
    OnceCache,
    Tier,
    UidGenerator,
    directive_id_generator,
    generate,
    hashed_id_generator,
    parse,
    relative_module_id,
)


def test_directive_ids():
    ids = directive_id_generator()
    assert ids("app/page.js", Tier.SERVER) == "use server:app/page.js"
    assert ids("app/page.js", "use client") == "use client:app/page.js"


def test_ids_are_memoised():
    calls = []

    def fn(file_id, tier):
        calls.append((file_id, tier))
        return file_id.upper()

    ids = IdGenerator(fn)
    assert ids("a.js", Tier.SERVER) == "A.JS"
    assert ids("a.js", Tier.SERVER) == "A.JS"
    assert calls == [("a.js", Tier.SERVER)]
    assert len(ids) == 1
    ids.clear()
    assert len(ids) == 0


def test_hashed_ids():
    ids = hashed_id_generator("s3cret")
    server = ids("app/page.js", Tier.SERVER)
    assert len(server) == 16
    int(server, 16)
    assert server == hashed_id_generator("s3cret")("app/page.js", Tier.SERVER)
    assert server != ids("app/page.js", Tier.CLIENT)
    assert server != hashed_id_generator("other")("app/page.js", Tier.SERVER)
    assert len(hashed_id_generator(b"key", length=8)("x.js", Tier.CLIENT)) == 8


def test_relative_module_id(tmp_path):
    root = tmp_path / "app"
    assert relative_module_id(str(root / "src" / "page.js"), str(root)) == "./src/page.js"
    assert relative_module_id(str(tmp_path / "lib" / "x.js"), str(root)) == "./__/lib/x.js"


def test_once_cache_runs_factory_once():
    cache = OnceCache()
    calls = []
    assert cache.once("k", lambda: calls.append(1) or "v") == "v"
    assert cache.once("k", lambda: calls.append(2) or "w") == "v"
    assert calls == [1]
    assert "k" in cache
    assert len(cache) == 1


def test_uids_skip_taken_names():
    uids = UidGenerator.from_program(parse("const _value = 1;\nimport { value } from 'x';\n"))
    assert uids.generate("value") == "_value2"
    assert uids.generate("_value3") == "_value3"
    assert uids.generate("value") == "_value4"
    assert uids.generate("my-helper") == "_myhelper"


def test_injector_merges_imports_and_keeps_helpers_first():
    program = parse('import * as React from "react";\nrender();\n')
    cache = OnceCache()
    injector = ImportInjector(program, cache, UidGenerator.from_program(program))
    assert injector.add_named("decrypt", "rt") == "_decrypt"
    assert injector.add_named("decrypt", "rt") == "_decrypt"
    assert injector.add_named("encrypt", "rt") == "_encrypt"
    assert injector.add_named("other", "elsewhere") == "_other"
    helper = injector.push_helper("helper", "helper", parse("x;\n").body[0].expression)
    assert helper == "_helper"
    assert generate(program) == (
        "var _helper = x;\n"
        'import { decrypt as _decrypt, encrypt as _encrypt } from "rt";\n'
        'import { other as _other } from "elsewhere";\n'
        'import * as React from "react";\n'
        "render();\n"
    )
