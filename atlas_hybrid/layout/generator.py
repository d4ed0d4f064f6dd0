"""
Layout generator.

Turns an intent plus an optional action into a Layout: a structure of
named regions, slots with inferred capabilities and size constraints,
grid and spacing settings.

Generation is deterministic and cached per (domain, goal, density,
device, action). Persona and accent are not part of the key because no
rule below depends on them.
"""
from __future__ import annotations

import logging
import math
import numbers
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..intent import Intent
from .tables import N_ACTIONS, ActionVariation, variation_for

logger = logging.getLogger(__name__)

# Size tier -> (min width, max width) in px
MIN_WIDTHS = {"tiny": 150, "small": 200, "medium": 300, "large": 400, "dominant": 600}
MAX_WIDTHS = {"tiny": 300, "small": 400, "medium": 600, "large": 1000}
DEFAULT_MIN_WIDTH = 250
DEFAULT_MAX_WIDTH = 800

# Slot-name substring -> capabilities
CAPABILITY_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("kpi", "metric"), ("display-metric", "real-time-update", "sparkline")),
    (("product", "compare-item"), ("display-product", "add-to-cart", "quick-view")),
    (("filter",), ("filter-data", "multi-select", "range-slider")),
    (("hero", "header"), ("display-headline", "call-to-action", "hero-image")),
    (("article", "content"), ("display-content", "typography", "reading-progress")),
    (("comment",), ("display-content", "user-generated")),
    (("preview",), ("display-content", "teaser", "clickable")),
    (("shipping", "payment", "form"), ("form-input", "validation")),
    (("summary",), ("display-content", "summary")),
    (("progress",), ("display-content", "progress-indicator")),
)

GOAL_CAPABILITIES = {
    "compare": ("comparison-view", "side-by-side"),
    "checkout": ("form-input", "validation", "payment"),
}

GOAL_PRIORITIES = {
    "kpi-focus": {"kpi": 10, "content": 5},
    "browse": {"products": 10, "filters": 7},
    "read": {"content": 10, "navigation": 4},
}

_SHRINK = {"large": "medium", "medium": "small"}
_GROW = {"small": "medium", "medium": "large"}


@dataclass(frozen=True)
class Region:
    name: str
    size: str
    priority: int
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "size": self.size, "priority": self.priority}
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class SlotConstraints:
    min_width: int
    max_width: int
    aspect: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"min_width": self.min_width, "max_width": self.max_width, "aspect": self.aspect}


@dataclass(frozen=True)
class Slot:
    """A named placeholder that will receive exactly one component."""
    name: str
    capabilities: Tuple[str, ...]
    size: str
    priority: int
    constraints: SlotConstraints
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "capabilities": list(self.capabilities),
            "size": self.size,
            "priority": self.priority,
            "constraints": self.constraints.to_dict(),
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class Structure:
    type: str
    regions: Tuple[Region, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "regions": [r.to_dict() for r in self.regions]}


@dataclass(frozen=True)
class GridConfig:
    cols: int
    rows: str = "auto"
    gap: int = 12

    def to_dict(self) -> Dict[str, Any]:
        return {"cols": self.cols, "rows": self.rows, "gap": self.gap}


@dataclass(frozen=True)
class Spacing:
    base: int
    section: int
    component: int
    element: int

    @classmethod
    def from_base(cls, base: int) -> "Spacing":
        return cls(base=base, section=base * 2, component=base, element=base // 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base": self.base,
            "section": self.section,
            "component": self.component,
            "element": self.element,
        }


@dataclass(frozen=True)
class Layout:
    """Generated layout. Cached instances are shared, so it is immutable."""
    id: str
    structure: Structure
    slots: Tuple[Slot, ...]
    grid: GridConfig
    spacing: Spacing
    priority: Dict[str, int] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "structure": self.structure.to_dict(),
            "slots": [s.to_dict() for s in self.slots],
            "grid": self.grid.to_dict(),
            "spacing": self.spacing.to_dict(),
            "priority": dict(self.priority),
            "metadata": dict(self.metadata),
        }


def normalize_action(action: Any, n_actions: int = N_ACTIONS) -> Optional[int]:
    """
    Validate an action index.

    Integers in [0, n_actions) pass; integral floats such as 3.0 are
    accepted as 3. None, booleans, fractional numbers, strings and out of
    range values yield None (no variation).
    """
    if action is None:
        return None
    if isinstance(action, bool):
        value = None
    elif isinstance(action, numbers.Integral):
        value = int(action)
    elif isinstance(action, numbers.Real) and math.isfinite(action) and float(action).is_integer():
        value = int(action)
    else:
        value = None

    if value is None or not 0 <= value < n_actions:
        logger.warning(f"[LayoutGenerator] Invalid action {action!r} (expected 0-{n_actions - 1}), using fallback")
        return None
    return value


class LayoutGenerator:
    """
    Procedural layout generation driven by intent and action.

    Example:
        >>> generator = LayoutGenerator()
        >>> layout = generator.generate({"domain": "dashboard", "goal": "kpi-focus"}, 2)
        >>> layout.structure.type
        'grid-2x2'
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries if max_entries is None else max(1, int(max_entries))
        self._cache: "OrderedDict[Tuple, Layout]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(intent: Intent, action: Optional[int]) -> Tuple:
        return (intent.domain, intent.goal, intent.density, intent.device, action)

    def generate(self, intent: Union[Intent, Mapping[str, Any], None], action: Any = None) -> Layout:
        """
        Layout for an intent and action.

        Never raises on malformed action values; they fall back to the
        heuristic layout.
        """
        intent = Intent.from_raw(intent)
        action = normalize_action(action)
        key = self.cache_key(intent, action)

        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

            layout = self._build(intent, action)
            self._cache[key] = layout
            if self.max_entries is not None:
                while len(self._cache) > self.max_entries:
                    self._cache.popitem(last=False)

        logger.debug(f"[LayoutGenerator] Generated {layout.structure.type} for {key}")
        return layout

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------

    def _build(self, intent: Intent, action: Optional[int]) -> Layout:
        variation = variation_for(intent.domain, action)
        structure = self._structure(intent, variation)
        return Layout(
            id=f"layout-{uuid.uuid4().hex[:12]}",
            structure=structure,
            slots=tuple(self._slot(region, intent) for region in structure.regions),
            grid=self._grid(intent, variation),
            spacing=self._spacing(intent),
            priority=dict(GOAL_PRIORITIES.get(intent.goal, {})),
            metadata={
                "intent": intent.to_dict(),
                "action": action,
                "variations": variation.to_dict() if variation else {},
            },
        )

    def _structure(self, intent: Intent, variation: Optional[ActionVariation]) -> Structure:
        domain, goal = intent.domain, intent.goal
        density, device = intent.density, intent.device

        style = variation.layout if variation else None
        count = variation.item_count if variation else None
        item_size = variation.item_size if variation else None

        structure_type = "grid"
        regions: List[Region] = []

        if domain == "dashboard":
            if goal == "kpi-focus":
                structure_type = style or "kpi-dominant"
                if count is None:
                    if density == "compact" and device == "desktop":
                        count = 6
                    elif density == "cozy" or device == "mobile":
                        count = 2
                    else:
                        count = 4
                regions.append(Region("header", "compact", 1))
                for i in range(count):
                    size = item_size or ("small" if count > 4 else "medium")
                    regions.append(Region(f"kpi-{i + 1}", size, 10 - i))
                if device != "mobile":
                    regions.append(Region("details", "flexible", 3))
            else:
                structure_type = "balanced-grid"
                regions = [
                    Region("header", "medium", 5),
                    Region("content-main", "large", 8),
                    Region("sidebar", "small", 4),
                ]

        elif domain == "blog":
            if goal == "read":
                structure_type = "content-centric"
                regions = [Region("hero", "large", 9), Region("article", "dominant", 10)]
                if device == "desktop" and density != "cozy":
                    regions.append(Region("sidebar-related", "small", 3))
                if device == "mobile":
                    regions.append(Region("comments", "medium", 4))
            else:
                structure_type = style or "feed-style"
                if count is None:
                    count = 6 if density == "compact" else 2 if density == "cozy" else 4
                regions = [
                    Region("navbar", "compact", 4),
                    Region("feed", item_size or "large", 9, {"item_count": count}),
                ]
                if device != "mobile":
                    regions.append(Region("filters", "small", 5))

        elif domain == "ecommerce":
            if goal == "browse":
                structure_type = style or "product-grid"
                regions = [Region("header", "medium", 5)]
                if device != "mobile":
                    regions.append(Region("filters", "sidebar", 6))
                if count is None:
                    if density == "compact":
                        count = 8
                    elif density == "cozy":
                        count = 3
                    elif device == "mobile":
                        count = 4
                    else:
                        count = 6
                regions.append(Region("products", item_size or "dominant", 10, {"item_count": count}))
            elif goal == "compare":
                structure_type = "comparison-layout"
                compare_count = 2 if device == "mobile" else 4 if density == "compact" else 3
                regions = [Region("header", "compact", 4)]
                for i in range(compare_count):
                    regions.append(Region(f"compare-item-{i + 1}", "medium", 9 - i))
                regions.append(Region("actions", "medium", 7))
            elif goal == "checkout":
                structure_type = "linear-flow"
                if device == "mobile":
                    steps = ("progress", "form", "summary")
                else:
                    steps = ("progress", "shipping", "payment", "summary", "actions")
                for i, step in enumerate(steps):
                    if step in ("form", "shipping", "payment"):
                        size = "dominant"
                    elif step == "summary":
                        size = "sidebar"
                    else:
                        size = "compact"
                    regions.append(Region(step, size, 10 - i))

        # Heuristic sizing only applies without an explicit layout style
        if not style:
            if device == "mobile":
                regions = [replace(r, size="large" if r.priority > 7 else "compact") for r in regions]
            if density == "compact":
                regions = [replace(r, size=_SHRINK.get(r.size, r.size)) for r in regions]
            elif density == "cozy":
                regions = [replace(r, size=_GROW.get(r.size, r.size)) for r in regions]

        return Structure(structure_type, tuple(regions))

    def _slot(self, region: Region, intent: Intent) -> Slot:
        return Slot(
            name=region.name,
            capabilities=infer_capabilities(region.name, intent.goal),
            size=region.size,
            priority=region.priority,
            constraints=SlotConstraints(
                min_width=MIN_WIDTHS.get(region.size, DEFAULT_MIN_WIDTH),
                max_width=MAX_WIDTHS.get(region.size, DEFAULT_MAX_WIDTH),
                aspect=_aspect(region.name, intent.density),
            ),
            metadata=dict(region.metadata) if region.metadata else None,
        )

    def _grid(self, intent: Intent, variation: Optional[ActionVariation]) -> GridConfig:
        device, density = intent.device, intent.density
        cols = variation.grid_cols if variation else 3
        gap = 12

        if variation is None:
            if device == "mobile":
                cols, gap = 1, 8
            elif device == "tablet":
                cols, gap = 2, 10

        if density == "compact":
            cols = max(cols, 4) if device == "desktop" else cols
            gap = 8
        elif density == "cozy":
            cols = min(cols, 2) if device == "desktop" else cols
            gap = 16

        if intent.domain == "ecommerce" and device == "desktop":
            cols = max(3, cols)

        return GridConfig(cols=cols, rows="auto", gap=gap)

    def _spacing(self, intent: Intent) -> Spacing:
        base = 8 if intent.density == "compact" else 16 if intent.density == "cozy" else 12
        return Spacing.from_base(base)


def infer_capabilities(slot_name: str, goal: Optional[str] = None) -> Tuple[str, ...]:
    """Capabilities a slot needs, from its name and the intent goal."""
    capabilities: List[str] = []
    for needles, caps in CAPABILITY_RULES:
        if any(needle in slot_name for needle in needles):
            capabilities.extend(caps)
    capabilities.extend(GOAL_CAPABILITIES.get(goal, ()))
    return tuple(dict.fromkeys(capabilities))


def _aspect(slot_name: str, density: Optional[str]) -> Optional[float]:
    if "product" in slot_name:
        return 0.75 if density == "compact" else 1.0
    if "hero" in slot_name:
        return 2.5
    if "kpi" in slot_name:
        return 1.5
    return None
