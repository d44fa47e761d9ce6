"""Reference id generation for transformed modules."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional, Union

from ..constants import HASHED_ID_LENGTH
from .nodes import Tier

try:  # pragma: no cover - optional dependency
    from cryptography.hazmat.primitives import hashes, hmac
except ImportError:  # pragma: no cover
    hashes = hmac = None

log = logging.getLogger(__name__)

IdFunction = Callable[[str, Tier], str]


class IdGenerator:
    """Memoising wrapper around an id function.

    The same ``(file id, tier)`` pair always yields the same id, also when
    several transforms run concurrently.
    """

    def __init__(self, fn: IdFunction):
        self._fn = fn
        self._memo: dict[tuple[str, Tier], str] = {}
        self._lock = threading.Lock()

    def __call__(self, file_id: str, tier: Union[Tier, str]) -> str:
        key = (file_id, Tier(tier))
        try:
            return self._memo[key]
        except KeyError:
            pass
        with self._lock:
            if key not in self._memo:
                self._memo[key] = self._fn(file_id, key[1])
                log.debug("id for %s (%s) -> %s", file_id, key[1].value, self._memo[key])
            return self._memo[key]

    def __len__(self) -> int:
        return len(self._memo)

    def clear(self) -> None:
        with self._lock:
            self._memo.clear()


def directive_id_generator() -> IdGenerator:
    """Ids of the form ``"<directive>:<file id>"``."""
    return IdGenerator(lambda file_id, tier: f"{tier.value}:{file_id}")


def hashed_id_generator(
    secret: Union[bytes, str], length: int = HASHED_ID_LENGTH
) -> IdGenerator:
    """Opaque ids: a truncated HMAC-SHA256 of the directive and file id.

    Keeps source paths out of client bundles while staying stable per key.
    """
    if hmac is None or hashes is None:
        raise RuntimeError(
            "Cryptography support is unavailable; install the 'cryptography' package"
        )
    key = secret.encode("utf-8") if isinstance(secret, str) else secret

    def compute(file_id: str, tier: Tier) -> str:
        mac = hmac.HMAC(key, hashes.SHA256())
        mac.update(f"{tier.value}:{file_id}".encode("utf-8"))
        return mac.finalize().hex()[:length]

    return IdGenerator(compute)


def relative_module_id(path: str, root: Optional[str] = None) -> str:
    """Root-relative, slash separated id; parent hops become ``__``."""
    rel = os.path.relpath(os.path.abspath(path), os.path.abspath(root or os.getcwd()))
    rel = rel.replace(os.sep, "/")
    parts = ["__" if part == ".." else part for part in rel.split("/")]
    return "./" + "/".join(parts)


__all__ = [
    "IdFunction",
    "IdGenerator",
    "directive_id_generator",
    "hashed_id_generator",
    "relative_module_id",
]
