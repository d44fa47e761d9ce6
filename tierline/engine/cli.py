"""Command-line interface for tierline."""
from __future__ import annotations

import argparse
import logging
import sys

from ..constants import LEDGER_FILE, LEDGER_HISTORY_LIMIT, TARGETS
from ..options import (
    ID_STRATEGIES,
    EncryptionOptions,
    TransformOptions,
    load_options,
)
from .compiler import TransformHook
from .directives import scan_directives
from .errors import ConfigError, ParseError, TransformError
from .exports import parse_directives
from .graph import export_graphviz
from .ids import directive_id_generator, hashed_id_generator, relative_module_id
from .ledger import ModuleLedger, show_ledger
from .parser import parse
from .scope import build_scopes


def parse_args(args):
    argp = argparse.ArgumentParser(
        prog="tierline",
        description='Rewrite "use client" / "use server" modules for a bundle target',
    )

    argp.add_argument("file", nargs="?", help="JavaScript or TypeScript module to transform")
    argp.add_argument(
        "--target", choices=TARGETS, default="server", help="Bundle to transform for"
    )
    argp.add_argument("--config", metavar="JSON", help="Load transform options from a JSON file")
    argp.add_argument("--import-from", metavar="MODULE", help="Runtime module to import from")
    argp.add_argument("--import-client", metavar="NAME", help="Client reference registrar")
    argp.add_argument("--import-server", metavar="NAME", help="Server reference registrar")
    argp.add_argument(
        "--encrypt",
        metavar="SOURCE:DECRYPT:ENCRYPT",
        help="Encrypt captured values with functions imported from SOURCE",
    )
    argp.add_argument("--id-strategy", choices=ID_STRATEGIES, help="Reference id scheme")
    argp.add_argument("--secret", help="Key for the hashed id strategy")
    argp.add_argument(
        "--root",
        metavar="DIR",
        help="Derive the module id relative to DIR instead of using the path as given",
    )
    argp.add_argument("-o", "--output", metavar="OUTPUT", help="Write the result to a file")
    argp.add_argument(
        "--inspect",
        action="store_true",
        help="Report the module directive and its exports instead of transforming",
    )
    argp.add_argument(
        "--viz", metavar="OUTPUT", help="Export a Graphviz scope and capture graph"
    )
    argp.add_argument(
        "--ledger",
        metavar="PATH",
        nargs="?",
        const=LEDGER_FILE,
        help="Record the module directive in a JSON-lines ledger",
    )
    argp.add_argument("--show-ledger", action="store_true", help="Show the module ledger")
    argp.add_argument(
        "--limit", type=int, default=LEDGER_HISTORY_LIMIT, help="Entries shown by --show-ledger"
    )
    argp.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return argp.parse_args(args)


def build_options(params) -> TransformOptions:
    """Config file first, command-line flags override."""
    options = load_options(params.config) if params.config else TransformOptions()
    if params.import_from:
        options.import_from = params.import_from
    if params.import_client:
        options.import_client = params.import_client
    if params.import_server:
        options.import_server = params.import_server
    if params.encrypt:
        parts = params.encrypt.split(":")
        if len(parts) != 3 or not all(parts):
            raise ConfigError("--encrypt expects SOURCE:DECRYPT:ENCRYPT")
        options.encryption = EncryptionOptions(*parts)
    if params.id_strategy == "hashed":
        if not params.secret:
            raise ConfigError("--secret is required with --id-strategy hashed")
        options.id_generator = hashed_id_generator(params.secret)
    elif params.id_strategy == "directive":
        options.id_generator = directive_id_generator()
    return options


def inspect_module(code, file_id):
    result = parse_directives(code, file_id)
    if result.directive is None:
        print(f"{file_id}: no directive")
        return result
    print(f"{file_id}: {result.directive.value}")
    for public, local in result.as_dict().items():
        print(f"  {public} → {local if local is not None else '*'}")
    return result


def main(args=None):
    params = parse_args(sys.argv[1:] if args is None else args)

    if params.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    if params.show_ledger:
        show_ledger(params.ledger or LEDGER_FILE, params.limit)
        return 0
    if not params.file:
        print("✗ No input file given")
        return 1

    try:
        options = build_options(params)
        with open(params.file, "r", encoding="utf-8") as f:
            code = f.read()
        file_id = relative_module_id(params.file, params.root) if params.root else params.file

        if params.inspect:
            inspect_module(code, file_id)
            return 0

        if params.viz:
            program = parse(code, file_id)
            tree = build_scopes(program)
            scan = scan_directives(program, tree)
            export_graphviz(tree, params.viz, scan.actions)

        ledger = ModuleLedger(params.ledger) if params.ledger else None
        hook = TransformHook(options, target=params.target, ledger=ledger)
        result = hook(code, file_id)
    except (TransformError, ParseError, ConfigError, OSError) as exc:
        print(f"✗ {exc}")
        return 1

    output = code if result is None else result.code
    if params.output:
        with open(params.output, "w", encoding="utf-8") as f:
            f.write(output)
        if result is None:
            print(f"  ✓ No directive found; {params.output} is a copy of the input")
        else:
            print(f"  ✓ {result.directive.value} module written → {params.output}")
    else:
        sys.stdout.write(output)
    return 0


def run():  # pragma: no cover
    sys.exit(main(sys.argv[1:]))


__all__ = ["parse_args", "build_options", "inspect_module", "main", "run"]
