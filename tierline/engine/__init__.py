"""
tierline engine: splits JavaScript and TypeScript modules along their
``"use client"`` / ``"use server"`` boundary.

  parse → scope → scan → hoist / replace / register → print

| Stage                    | Purpose                                         |
<------------------------- + ----------------------------------------------- >
| **Parser**               | tree-sitter CST → lossless tierline tree        |
| **Scope analysis**       | bindings, references and captured variables     |
| **Directive scanner**    | module tier, inline actions, top-level bindings |
| **Hoist engine**         | lifts inline actions to registered exports      |
| **Module rewriter**      | reference stubs and export registration         |
| **Printer**              | canonical source output                         |
"""

from . import nodes as _nodes
from . import errors as _errors
from . import parser as _parser
from . import printer as _printer
from . import scope as _scope
from . import closure as _closure
from . import directives as _directives
from . import exports as _exports
from . import imports as _imports
from . import ids as _ids
from . import hoist as _hoist
from . import compiler as _compiler
from . import ledger as _ledger
from . import graph as _graph
from .cli import main, parse_args
from .nodes import *  # noqa: F401,F403
from .errors import *  # noqa: F401,F403
from .parser import *  # noqa: F401,F403
from .printer import *  # noqa: F401,F403
from .scope import *  # noqa: F401,F403
from .closure import *  # noqa: F401,F403
from .directives import *  # noqa: F401,F403
from .exports import *  # noqa: F401,F403
from .imports import *  # noqa: F401,F403
from .ids import *  # noqa: F401,F403
from .hoist import *  # noqa: F401,F403
from .compiler import *  # noqa: F401,F403
from .ledger import *  # noqa: F401,F403
from .graph import *  # noqa: F401,F403

__all__ = ["main", "parse_args"]
for _module in (
    _nodes,
    _errors,
    _parser,
    _printer,
    _scope,
    _closure,
    _directives,
    _exports,
    _imports,
    _ids,
    _hoist,
    _compiler,
    _ledger,
    _graph,
):
    __all__ += getattr(_module, "__all__", [])
del _module
