"""Shared constant values for tierline."""

USE_CLIENT = "use client"
USE_SERVER = "use server"

DIRECTIVES = (USE_CLIENT, USE_SERVER)

TARGETS = ("server", "client")

# Cheap textual probe run before parsing; files without a match pass through.
DIRECTIVE_PROBE = r"""["']use (server|client)["']"""

DEFAULT_IMPORT_FROM = "tierline/runtime"
DEFAULT_IMPORT_CLIENT = "registerClientReference"
DEFAULT_IMPORT_SERVER = "registerServerReference"

INLINE_ACTION_NAME = "$$INLINE_ACTION"
CLOSURE_PARAM_NAME = "$$CLOSURE"
BOUND_ARGS_HELPER_NAME = "wrapBoundArgs"
LAZY_WRAPPER_VALUE_KEY = "value"

LEDGER_FILE = "tierline.modules.jsonl"
LEDGER_HISTORY_LIMIT = 10

HASHED_ID_LENGTH = 16

__all__ = [
    "USE_CLIENT",
    "USE_SERVER",
    "DIRECTIVES",
    "TARGETS",
    "DIRECTIVE_PROBE",
    "DEFAULT_IMPORT_FROM",
    "DEFAULT_IMPORT_CLIENT",
    "DEFAULT_IMPORT_SERVER",
    "INLINE_ACTION_NAME",
    "CLOSURE_PARAM_NAME",
    "BOUND_ARGS_HELPER_NAME",
    "LAZY_WRAPPER_VALUE_KEY",
    "LEDGER_FILE",
    "LEDGER_HISTORY_LIMIT",
    "HASHED_ID_LENGTH",
]
