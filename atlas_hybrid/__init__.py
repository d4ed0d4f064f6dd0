"""
Atlas adaptive layout engine.

Turns a loose user intent into a concrete page layout and a
slot-to-component composition, and learns from feedback which layout
variation works best for each context.
"""

__version__ = "0.1.0"

from .errors import EngineInitError
from .intent import Intent, normalize_intent, vectorize
from .config import ServiceConfig
from .service import AdaptiveLayoutService, Decision

__all__ = [
    "__version__",
    "EngineInitError",
    "Intent",
    "normalize_intent",
    "vectorize",
    "ServiceConfig",
    "AdaptiveLayoutService",
    "Decision",
]
