"""
Affordance registry.

Maps component tags to static capability descriptors and keeps inverted
indices by capability, context and goal for constant-time candidate
lookup. Populated once at startup; the composer reads a snapshot.
"""
from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from ..intent import Intent

logger = logging.getLogger(__name__)

FALLBACK_TAG = "atlas-card"

_NUMERIC_SUFFIX = re.compile(r"-\d+$")


def slot_base(slot_name: str) -> str:
    """Lowercased slot name without a trailing index (kpi-3 -> kpi)."""
    return _NUMERIC_SUFFIX.sub("", str(slot_name or "").lower())


def _as_tuple(values: Any) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(str(v) for v in values)


@dataclass(frozen=True)
class Affordance:
    """
    Static capability descriptor of a component.

    Attributes:
        capabilities: What the component can do
        contexts: Domains it is designed for (None = generic)
        goals: Intent goals it serves (None = generic)
        priority: Base preference, typically 1-10
        style_tokens: CSS custom properties the component reads
        name: Component name used for name heuristics (defaults to the tag)
    """
    capabilities: Tuple[str, ...] = ()
    contexts: Optional[Tuple[str, ...]] = None
    goals: Optional[Tuple[str, ...]] = None
    priority: int = 5
    style_tokens: Tuple[str, ...] = ()
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Affordance":
        contexts = data.get("contexts")
        goals = data.get("goals")
        priority = data.get("priority")
        return cls(
            capabilities=_as_tuple(data.get("capabilities")),
            contexts=None if contexts is None else _as_tuple(contexts),
            goals=None if goals is None else _as_tuple(goals),
            priority=5 if priority is None else int(priority),
            style_tokens=_as_tuple(data.get("style_tokens", data.get("styleTokens"))),
            name=data.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capabilities": list(self.capabilities),
            "contexts": None if self.contexts is None else list(self.contexts),
            "goals": None if self.goals is None else list(self.goals),
            "priority": self.priority,
            "style_tokens": list(self.style_tokens),
            "name": self.name,
        }


@dataclass(frozen=True)
class RegistryEntry:
    tag: str
    affordance: Affordance

    @property
    def component_name(self) -> str:
        return self.affordance.name or self.tag


_DESCRIPTOR_KEYS = ("capabilities", "contexts", "goals", "priority")

Descriptor = Union[Affordance, Mapping[str, Any], Any]


def _to_affordance(descriptor: Descriptor) -> Optional[Affordance]:
    if isinstance(descriptor, Affordance):
        return descriptor
    if isinstance(descriptor, Mapping):
        if not any(key in descriptor for key in _DESCRIPTOR_KEYS):
            return None
        return Affordance.from_dict(descriptor)

    # Component classes exposing affordance() / style_tokens()
    describe = getattr(descriptor, "affordance", None)
    if not callable(describe):
        return None
    record = describe()
    if not isinstance(record, Mapping):
        return None
    data = dict(record)
    tokens = getattr(descriptor, "style_tokens", None)
    if callable(tokens) and "style_tokens" not in data:
        data["style_tokens"] = tokens()
    data.setdefault("name", getattr(descriptor, "__name__", None))
    return Affordance.from_dict(data)


# Built-in primitives
DEFAULT_COMPONENTS: Dict[str, Affordance] = {
    "atlas-header": Affordance(
        capabilities=("display-headline", "branding", "navigation-hint"),
        contexts=("dashboard", "blog", "ecommerce"),
        goals=("browse", "read", "kpi-focus"),
        priority=6,
        style_tokens=("--card", "--text", "--accent"),
    ),
    "atlas-navbar": Affordance(
        capabilities=("navigation", "menu", "branding"),
        contexts=("blog", "ecommerce"),
        goals=("browse", "read"),
        priority=7,
        style_tokens=("--card", "--text", "--accent"),
    ),
    "atlas-card": Affordance(
        capabilities=("display-content", "container", "generic"),
        contexts=("dashboard", "blog", "ecommerce"),
        goals=("browse", "read", "kpi-focus"),
        priority=5,
        style_tokens=("--card", "--text"),
    ),
    "atlas-kpi": Affordance(
        capabilities=("display-metric", "real-time-update", "kpi", "numeric-display"),
        contexts=("dashboard",),
        goals=("kpi-focus",),
        priority=10,
        style_tokens=("--card", "--accent"),
    ),
    "atlas-grid": Affordance(
        capabilities=("grid-layout", "multi-item", "container"),
        contexts=("dashboard", "blog"),
        goals=("browse", "read"),
        priority=7,
        style_tokens=("--card",),
    ),
    "atlas-hero": Affordance(
        capabilities=("display-headline", "hero-image", "call-to-action", "prominent-display"),
        contexts=("blog", "ecommerce"),
        goals=("read", "browse"),
        priority=9,
        style_tokens=("--card", "--accent"),
    ),
    "atlas-filter-panel": Affordance(
        capabilities=("filter-data", "multi-select", "sidebar", "form-controls"),
        contexts=("ecommerce",),
        goals=("browse", "compare"),
        priority=8,
        style_tokens=("--card", "--accent"),
    ),
    "atlas-product-tile": Affordance(
        capabilities=("display-product", "add-to-cart", "favorite", "product-info"),
        contexts=("ecommerce",),
        goals=("browse", "compare", "checkout"),
        priority=9,
        style_tokens=("--card", "--text", "--accent"),
    ),
    "atlas-product-grid": Affordance(
        capabilities=("display-product", "grid-layout", "product-collection"),
        contexts=("ecommerce",),
        goals=("browse", "compare"),
        priority=10,
        style_tokens=("--card",),
    ),
}

# Slot-name substring -> capabilities to look up in the index
_SLOT_HINTS: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("kpi", "metric"), ("display-metric", "kpi")),
    (("product", "compare-item"), ("display-product", "product-info", "product-collection")),
    (("filter",), ("filter-data", "form-controls")),
    (("hero", "header"), ("display-headline", "hero-image")),
    (("nav",), ("navigation", "menu")),
    (("grid", "gallery"), ("grid-layout", "multi-item")),
    (("article", "content", "preview"), ("display-content", "typography")),
    (("feed",), ("grid-layout", "multi-item", "container")),
    (("comment",), ("display-content", "user-generated")),
    (("form", "shipping", "payment"), ("form-input", "validation")),
    (("summary", "details"), ("display-content", "container")),
)


class AffordanceRegistry:
    """
    Registry of component affordances with capability/context/goal indices.

    Example:
        >>> registry = AffordanceRegistry()
        >>> registry.register_defaults()
        9
        >>> registry.find_by_capability("kpi")
        ['atlas-kpi']
    """

    def __init__(self):
        self._entries: Dict[str, RegistryEntry] = {}
        self._capability_index: Dict[str, List[str]] = {}
        self._context_index: Dict[str, List[str]] = {}
        self._goal_index: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def register(self, tag: str, descriptor: Descriptor) -> bool:
        """
        Register a component under a tag.

        Accepts an Affordance, a mapping with capability/context/goal/
        priority keys, or an object with an affordance() method.

        Returns:
            False (with a warning) if no descriptor record can be read
        """
        try:
            affordance = _to_affordance(descriptor)
        except Exception as e:
            logger.warning(f"[AffordanceRegistry] Could not read affordance for {tag}: {e}")
            return False
        if affordance is None:
            logger.warning(f"[AffordanceRegistry] Component {tag} has no affordance descriptor")
            return False

        with self._lock:
            if tag in self._entries:
                self._unindex(tag)
            self._entries[tag] = RegistryEntry(tag, affordance)
            self._index(self._capability_index, tag, affordance.capabilities)
            self._index(self._context_index, tag, affordance.contexts or ())
            self._index(self._goal_index, tag, affordance.goals or ())
        return True

    def register_defaults(self) -> int:
        """Register the built-in primitives. Returns the registry size."""
        for tag, affordance in DEFAULT_COMPONENTS.items():
            self.register(tag, affordance)
        logger.info(f"[AffordanceRegistry] Registered {len(self)} components")
        return len(self)

    @staticmethod
    def _index(index: Dict[str, List[str]], tag: str, keys: Tuple[str, ...]) -> None:
        for key in dict.fromkeys(keys):
            index.setdefault(key, []).append(tag)

    def _unindex(self, tag: str) -> None:
        for index in (self._capability_index, self._context_index, self._goal_index):
            for key in list(index):
                tags = index[key]
                if tag in tags:
                    tags.remove(tag)
                if not tags:
                    del index[key]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, tag: str) -> Optional[RegistryEntry]:
        return self._entries.get(tag)

    def snapshot(self) -> Tuple[RegistryEntry, ...]:
        """Entries in registration order."""
        with self._lock:
            return tuple(self._entries.values())

    def __contains__(self, tag: object) -> bool:
        return tag in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(self.snapshot())

    def find_by_capability(self, capability: str) -> List[str]:
        return list(self._capability_index.get(capability, ()))

    def find_by_context(self, context: str) -> List[str]:
        return list(self._context_index.get(context, ()))

    def find_by_goal(self, goal: str) -> List[str]:
        return list(self._goal_index.get(goal, ()))

    def find_best_match(self, slot_name: str, intent: Union[Intent, Mapping[str, Any], None]) -> str:
        """
        Best tag for a slot outside the composer.

        Candidates come from the context and goal indices plus
        capabilities inferred from the slot name. Falls back to
        FALLBACK_TAG when nothing matches.
        """
        intent = Intent.from_raw(intent)
        candidates: Dict[str, None] = {}
        if intent.domain:
            candidates.update(dict.fromkeys(self.find_by_context(intent.domain)))
        if intent.goal:
            candidates.update(dict.fromkeys(self.find_by_goal(intent.goal)))
        for capability in infer_slot_capabilities(slot_name):
            candidates.update(dict.fromkeys(self.find_by_capability(capability)))

        best_tag, best_score = None, -1
        for tag in candidates:
            score = self._score_candidate(tag, slot_name, intent)
            if score > best_score:
                best_tag, best_score = tag, score
        return best_tag or FALLBACK_TAG

    def _score_candidate(self, tag: str, slot_name: str, intent: Intent) -> int:
        entry = self._entries.get(tag)
        if entry is None:
            return 0
        aff = entry.affordance
        base = slot_base(slot_name)
        tag_lower = tag.lower()

        score = 0
        if aff.contexts and intent.domain in aff.contexts:
            score += 30
        if aff.goals and intent.goal in aff.goals:
            score += 25

        if base == "products" and "product-grid" in tag_lower:
            score += 40
        elif base == "feed" and "grid" in tag_lower:
            score += 35
        elif base and re.sub(r"[-_]", "", base) in tag_lower:
            score += 20

        return score + (aff.priority or 5)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_components": len(self._entries),
                "capabilities": len(self._capability_index),
                "contexts": len(self._context_index),
                "goals": len(self._goal_index),
                "components": list(self._entries),
            }

    def inspect(self, tag: str) -> Dict[str, Any]:
        entry = self._entries.get(tag)
        if entry is None:
            return {"error": "Component not found"}
        return {
            "tag": tag,
            "affordance": entry.affordance.to_dict(),
            "style_tokens": list(entry.affordance.style_tokens),
        }


def infer_slot_capabilities(slot_name: str) -> List[str]:
    """Capabilities suggested by a slot name, for index lookups."""
    base = slot_base(slot_name)
    capabilities: List[str] = []
    for needles, caps in _SLOT_HINTS:
        if any(needle in base for needle in needles):
            capabilities.extend(caps)
    return capabilities
