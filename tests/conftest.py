import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from tierline import EncryptionOptions, IdGenerator, TransformOptions, parse, print_module


def normalize(code, file_id="expected.js"):
    """Canonical text of ``code`` as printed by tierline itself."""
    return print_module(parse(code, file_id)).text


@pytest.fixture
def options():
    return TransformOptions(
        id_generator=IdGenerator(lambda file_id, tier: f"{tier.value}:{file_id}"),
        import_from="mwap/runtime/server",
        import_client="$$client",
        import_server="$$server",
    )


@pytest.fixture
def client_options():
    return TransformOptions(
        id_generator=IdGenerator(lambda file_id, tier: f"{tier.value}:{file_id}"),
        import_from="mwap/runtime/client",
        import_server="$$server",
    )


@pytest.fixture
def encrypted_options(options):
    options.encryption = EncryptionOptions(
        import_source="mwap/runtime/server",
        decrypt_fn="decrypt",
        encrypt_fn="encrypt",
    )
    return options


@pytest.fixture
def assert_code():
    def check(actual, expected):
        assert normalize(actual) == normalize(expected)

    return check
