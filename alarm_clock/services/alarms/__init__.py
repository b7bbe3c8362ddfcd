"""
Alarm clock engine package.

The engine, store and occurrence math depend only on shared config/logging
modules; storage and notification backends are wired in by ``app``.
"""

from . import models  # noqa: F401
from . import occurrence  # noqa: F401
from . import store  # noqa: F401
from . import engine  # noqa: F401

__all__ = [
    "models",
    "occurrence",
    "store",
    "engine",
]
