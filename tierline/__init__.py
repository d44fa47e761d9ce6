"""Public :mod:`tierline` API."""

from . import constants as _constants
from . import engine as _engine
from . import options as _options
from .constants import *  # noqa: F401,F403
from .engine import *  # noqa: F401,F403
from .options import *  # noqa: F401,F403

__all__ = []
__all__ += getattr(_constants, "__all__", [])
__all__ += getattr(_engine, "__all__", [])
__all__ += getattr(_options, "__all__", [])
