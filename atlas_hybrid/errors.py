"""
Exceptions raised at initialization boundaries.

Everything else in the package degrades to defaults instead of raising.
"""
from __future__ import annotations


class EngineInitError(RuntimeError):
    """
    The decision engine could not be constructed.

    Raised when the numeric backend is unavailable, the value network
    cannot be built, or the persistence directory is unusable. No
    partially built engine is ever returned alongside this error.
    """
