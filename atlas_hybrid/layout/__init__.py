"""Layout generation from intent plus a learned action."""

from .generator import Layout, LayoutGenerator, Slot, normalize_action
from .tables import ACTION_TABLES, N_ACTIONS, ActionVariation, variation_for

__all__ = [
    "Layout",
    "LayoutGenerator",
    "Slot",
    "normalize_action",
    "ACTION_TABLES",
    "N_ACTIONS",
    "ActionVariation",
    "variation_for",
]
