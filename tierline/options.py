"""Transform configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any, Mapping, Optional

from .constants import DEFAULT_IMPORT_CLIENT, DEFAULT_IMPORT_FROM, DEFAULT_IMPORT_SERVER
from .engine.errors import ConfigError
from .engine.ids import IdGenerator, directive_id_generator, hashed_id_generator

log = logging.getLogger(__name__)

ID_STRATEGIES = ("directive", "hashed")


@dataclass(frozen=True)
class EncryptionOptions:
    import_source: str
    decrypt_fn: str
    encrypt_fn: str


@dataclass
class TransformOptions:
    id_generator: IdGenerator = field(default_factory=directive_id_generator)
    import_from: str = DEFAULT_IMPORT_FROM
    import_client: str = DEFAULT_IMPORT_CLIENT
    import_server: str = DEFAULT_IMPORT_SERVER
    encryption: Optional[EncryptionOptions] = None


def _string(data: Mapping[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = data.get(key, default)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value


def _required(data: Mapping[str, Any], key: str, where: str) -> str:
    if key not in data:
        raise ConfigError(f"Missing '{key}' in {where}")
    return _string(data, key)


def encryption_from_dict(data: Mapping[str, Any]) -> EncryptionOptions:
    if not isinstance(data, Mapping):
        raise ConfigError("'encryption' must be an object")
    return EncryptionOptions(
        import_source=_required(data, "importSource", "encryption"),
        decrypt_fn=_required(data, "decryptFn", "encryption"),
        encrypt_fn=_required(data, "encryptFn", "encryption"),
    )


def options_from_dict(data: Mapping[str, Any]) -> TransformOptions:
    """Build options from the camelCase JSON layout."""
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration must be a JSON object")

    strategy = data.get("idStrategy", "directive")
    if strategy not in ID_STRATEGIES:
        raise ConfigError(
            f"'idStrategy' must be one of {', '.join(ID_STRATEGIES)}, got {strategy!r}"
        )
    if strategy == "hashed":
        secret = data.get("secret")
        if not isinstance(secret, str) or not secret:
            raise ConfigError("'secret' is required for the hashed id strategy")
        ids = hashed_id_generator(secret)
    else:
        ids = directive_id_generator()

    encryption = None
    if data.get("encryption") is not None:
        encryption = encryption_from_dict(data["encryption"])

    return TransformOptions(
        id_generator=ids,
        import_from=_string(data, "importFrom", DEFAULT_IMPORT_FROM),
        import_client=_string(data, "importClient", DEFAULT_IMPORT_CLIENT),
        import_server=_string(data, "importServer", DEFAULT_IMPORT_SERVER),
        encryption=encryption,
    )


def load_options(path: str) -> TransformOptions:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON ({exc.msg})") from exc
    log.debug("loaded options from %s", path)
    return options_from_dict(data)


__all__ = [
    "ID_STRATEGIES",
    "EncryptionOptions",
    "TransformOptions",
    "encryption_from_dict",
    "options_from_dict",
    "load_options",
]
