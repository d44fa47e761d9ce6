"""Append-only record of which modules carried which directive."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import threading
from typing import Optional, Union

from ..constants import LEDGER_FILE, LEDGER_HISTORY_LIMIT
from .nodes import Tier

log = logging.getLogger(__name__)


def _read_entries(path: str) -> list[dict]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
    except FileNotFoundError:
        return []


class ModuleLedger:
    """JSON-lines sidecar; each file id is written at most once."""

    def __init__(self, path: str = LEDGER_FILE):
        self.path = path
        self._known: Optional[dict[str, str]] = None
        self._lock = threading.Lock()

    def load(self) -> dict[str, str]:
        """Latest directive per file id, as found on disk."""
        return {entry["file"]: entry["directive"] for entry in _read_entries(self.path)}

    def record(self, file_id: str, tier: Union[Tier, str]) -> Optional[dict]:
        tier = Tier(tier)
        with self._lock:
            if self._known is None:
                self._known = self.load()
            if file_id in self._known:
                return None
            entry = {
                "file": file_id,
                "directive": tier.value,
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            }
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
            self._known[file_id] = tier.value
        log.debug("ledger %s: %s -> %s", self.path, file_id, tier.value)
        return entry


def show_ledger(path: str = LEDGER_FILE, limit: int = LEDGER_HISTORY_LIMIT) -> None:
    """Display recent ledger entries."""
    entries = _read_entries(path)
    if not entries:
        print("No ledger yet.")
        return
    entries = entries[-limit:]
    print(f"\nModule ledger: last {len(entries)} entries:")
    for e in reversed(entries):
        print(f"• {e['timestamp']}  {e['file']}  [{e['directive']}]")


__all__ = ["ModuleLedger", "show_ledger"]
