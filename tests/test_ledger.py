import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import ModuleLedger, Tier, show_ledger


def test_record_writes_each_file_once(tmp_path):
    path = tmp_path / "ledger.jsonl"
    ledger = ModuleLedger(str(path))
    entry = ledger.record("app/page.js", Tier.CLIENT)
    assert entry["file"] == "app/page.js"
    assert entry["directive"] == "use client"
    assert entry["timestamp"].endswith("Z")
    assert ledger.record("app/page.js", Tier.SERVER) is None
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["file"] for line in lines] == ["app/page.js"]


def test_ledger_survives_reload(tmp_path):
    path = str(tmp_path / "ledger.jsonl")
    ModuleLedger(path).record("a.js", "use server")
    again = ModuleLedger(path)
    assert again.load() == {"a.js": "use server"}
    assert again.record("a.js", Tier.SERVER) is None
    assert again.record("b.js", Tier.CLIENT) is not None


def test_show_ledger(tmp_path, capsys):
    path = str(tmp_path / "ledger.jsonl")
    show_ledger(path)
    assert "No ledger yet." in capsys.readouterr().out

    ledger = ModuleLedger(path)
    for name in ("a.js", "b.js", "c.js"):
        ledger.record(name, Tier.SERVER)
    show_ledger(path, limit=2)
    out = capsys.readouterr().out
    assert "last 2 entries" in out
    assert "a.js" not in out
    assert out.index("c.js") < out.index("b.js")
