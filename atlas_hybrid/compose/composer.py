"""
Component composer.

Assigns one registered component to every slot of a layout. Well-known
slots resolve through an explicit override table; every other slot is
scored against all registered components on capability overlap,
context, goal, priority and name similarity.
"""
from __future__ import annotations

import logging
import re
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from ..intent import Intent
from ..layout.generator import Layout, Slot
from .registry import FALLBACK_TAG, AffordanceRegistry, RegistryEntry, slot_base

logger = logging.getLogger(__name__)

EXPLICIT_MATCHES = {
    "products": "atlas-product-grid",
    "feed": "atlas-grid",
    "filters": "atlas-filter-panel",
    "navbar": "atlas-navbar",
    "hero": "atlas-hero",
    "header": "atlas-header",
}

KPI_LABELS = (
    "Revenue", "Users", "Conversions", "Engagement",
    "Growth", "Retention", "Churn", "Sessions",
    "Bounce Rate", "Avg. Order", "CTR", "ROI",
)

NAMED_KPI_LABELS = {
    "kpi-primary": "Revenue",
    "kpi-secondary": "Users",
    "metric": "Performance",
    "stat": "Conversions",
    "header": "Overview",
}

_SINGULAR = {
    "products": "product", "items": "item", "tiles": "tile", "cards": "card",
    "kpis": "kpi", "metrics": "kpi", "articles": "article", "contents": "content",
    "heroes": "hero", "nav": "navbar", "menus": "navbar",
}

_SEMANTIC_SYNONYMS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("kpi", ("kpi", "metric", "stat", "score")),
    ("product", ("product", "tile", "card", "catalog", "listing")),
    ("filter", ("filter", "panel", "sidebar", "refine")),
    ("hero", ("hero", "banner", "header", "cover")),
    ("grid", ("grid", "gallery", "masonry", "feed", "list")),
    ("navbar", ("nav", "menu", "header", "navbar")),
    ("article", ("article", "content", "post", "preview")),
    ("compare", ("compare", "comparison", "side", "versus")),
)

_CAMEL = re.compile(r"([a-z])([A-Z])")
_KPI_INDEX = re.compile(r"kpi-(\d+)")


def _stem(token: str) -> str:
    return _SINGULAR.get(token, token)


def name_tokens(name: str) -> List[str]:
    """Tokens of a slot or component name: kebab-cased, atlas- prefix removed, singularized."""
    if not name:
        return []
    s = _CAMEL.sub(r"\1-\2", str(name)).lower()
    s = re.sub(r"^atlas-?", "", s)
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return [_stem(t) for t in s.split("-") if t]


def slot_name_bonus(slot_name: str, component_name: str) -> float:
    """
    Name-similarity bonus in [0, 25].

    Examples:
        >>> slot_name_bonus("products", "atlas-product-grid")
        22
        >>> slot_name_bonus("kpi-2", "AtlasKPI")
        13
    """
    base = slot_base(slot_name)
    slot_tokens = name_tokens(base)
    comp_tokens = name_tokens(component_name)

    if base == "products" and "product" in comp_tokens and "grid" in comp_tokens:
        return 22
    if base == "feed" and ("grid" in comp_tokens or "masonry" in comp_tokens):
        return 18

    overlap = [t for t in slot_tokens if t in comp_tokens]
    bonus = min(5 * len(overlap), 15)

    for key, synonyms in _SEMANTIC_SYNONYMS:
        if key in base and any(_stem(s) in comp_tokens for s in synonyms):
            bonus += 8
            break

    return max(0, min(25, bonus))


@dataclass
class ComponentAssignment:
    """One slot -> component decision."""
    slot: str
    component: str
    props: Dict[str, Any]
    priority: int
    score: float
    capabilities: Tuple[str, ...] = ()
    reasoning: str = ""
    slot_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot,
            "component": self.component,
            "props": dict(self.props),
            "priority": self.priority,
            "metadata": {
                "score": self.score,
                "capabilities": list(self.capabilities),
                "reasoning": self.reasoning,
                "slot_metadata": dict(self.slot_metadata),
            },
        }


@dataclass
class CompositionResult:
    """A composition together with the layout it was built for."""
    components: List[ComponentAssignment]
    layout: Layout
    metadata: Dict[str, Any] = field(default_factory=dict)

    def missing_slots(self) -> List[str]:
        assigned = {c.slot for c in self.components}
        return [s.name for s in self.layout.slots if s.name not in assigned]

    def validate(self) -> bool:
        """True when every layout slot has a component."""
        missing = self.missing_slots()
        if missing:
            logger.warning(f"Missing components for slots: {missing}")
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components],
            "layout": {
                "id": self.layout.id,
                "structure": self.layout.structure.to_dict(),
                "grid": self.layout.grid.to_dict(),
            },
            "metadata": {**self.metadata, "total_components": len(self.components)},
        }


@dataclass(frozen=True)
class _Candidate:
    tag: str
    score: float
    capabilities: Tuple[str, ...]
    reasoning: str


class ComponentComposer:
    """
    Slot-to-component matcher over an AffordanceRegistry.

    compose() is a pure function of its inputs and the registry snapshot
    taken at the start of the call.
    """

    def __init__(self, registry: AffordanceRegistry):
        self.registry = registry

    def compose(
        self, layout: Layout, intent: Union[Intent, Mapping[str, Any], None]
    ) -> List[ComponentAssignment]:
        """
        Assign a component to every slot.

        Returns:
            Assignments sorted by descending slot priority
        """
        intent = Intent.from_raw(intent)
        entries = self.registry.snapshot()
        by_tag = {entry.tag: entry for entry in entries}

        composition = []
        for slot in layout.slots:
            best = self._best_component(slot, intent, entries, by_tag)
            composition.append(
                ComponentAssignment(
                    slot=slot.name,
                    component=best.tag,
                    props=self._derive_props(slot, best.tag, layout),
                    priority=slot.priority,
                    score=best.score,
                    capabilities=best.capabilities,
                    reasoning=best.reasoning,
                    slot_metadata=dict(slot.metadata or {}),
                )
            )

        composition.sort(key=lambda a: -a.priority)
        return composition

    def compose_result(
        self, layout: Layout, intent: Union[Intent, Mapping[str, Any], None], **metadata: Any
    ) -> CompositionResult:
        return CompositionResult(self.compose(layout, intent), layout, dict(metadata))

    def _best_component(
        self,
        slot: Slot,
        intent: Intent,
        entries: Sequence[RegistryEntry],
        by_tag: Dict[str, RegistryEntry],
    ) -> _Candidate:
        tag = EXPLICIT_MATCHES.get(slot_base(slot.name))
        if tag and tag in by_tag:
            return _Candidate(
                tag, 100, by_tag[tag].affordance.capabilities, f"Explicit match for slot '{slot.name}'"
            )

        candidates = []
        for entry in entries:
            score = self.score_component(slot, entry, intent)
            if score > 0:
                candidates.append(
                    _Candidate(
                        entry.tag,
                        score,
                        entry.affordance.capabilities,
                        self._explain(slot, entry, intent, score),
                    )
                )

        if not candidates:
            return _Candidate(FALLBACK_TAG, 1, (), "Fallback to default card")

        # stable: ties keep registration order
        candidates.sort(key=lambda c: -c.score)
        return candidates[0]

    def score_component(self, slot: Slot, entry: RegistryEntry, intent: Intent) -> float:
        """Match score of a component for a slot, clamped to [0, 100]."""
        aff = entry.affordance
        required = slot.capabilities
        if required:
            matching = [cap for cap in required if cap in aff.capabilities]
            score = len(matching) / len(required) * 40
        else:
            score = 20.0

        if not aff.contexts:
            score += 10
        elif intent.domain in aff.contexts:
            score += 25

        if not aff.goals:
            score += 8
        elif intent.goal in aff.goals:
            score += 20

        score += min(aff.priority or 5, 15)
        score += slot_name_bonus(slot.name, entry.component_name)

        return min(100.0, max(0.0, score))

    @staticmethod
    def _explain(slot: Slot, entry: RegistryEntry, intent: Intent, score: float) -> str:
        aff = entry.affordance
        reasons = []
        matching = [cap for cap in slot.capabilities if cap in aff.capabilities]
        if matching:
            reasons.append(f"Matches {len(matching)}/{len(slot.capabilities)} required capabilities")
        if aff.contexts and intent.domain in aff.contexts:
            reasons.append(f"Perfect context match: {intent.domain}")
        if aff.goals and intent.goal in aff.goals:
            reasons.append(f"Goal alignment: {intent.goal}")
        reasons.append(f"Total score: {score:.1f}/100")
        return "; ".join(reasons)

    def _derive_props(self, slot: Slot, tag: str, layout: Layout) -> Dict[str, Any]:
        props: Dict[str, Any] = {}
        item_count = (slot.metadata or {}).get("item_count")

        if "grid" in tag or "product" in tag:
            props["cols"] = layout.grid.cols
            if item_count:
                props["data-item-count"] = item_count

        if "kpi" in tag:
            props["value"] = mock_kpi_value(layout.id, slot.name)
            props["label"] = kpi_label(slot.name)

        if slot.size:
            props["data-size"] = slot.size
        if slot.priority:
            props["data-priority"] = slot.priority

        return props


def kpi_label(slot_name: str) -> str:
    """Display label for a KPI slot (kpi-1 -> Revenue, kpi-2 -> Users, ...)."""
    match = _KPI_INDEX.search(slot_name)
    if match:
        index = int(match.group(1)) - 1
        return KPI_LABELS[index % len(KPI_LABELS)]
    return NAMED_KPI_LABELS.get(slot_name, "Metric")


def mock_kpi_value(layout_id: str, slot_name: str) -> int:
    """Placeholder KPI value in [0, 100), stable for a given layout and slot."""
    return zlib.crc32(f"{layout_id}:{slot_name}".encode("utf-8")) % 100
