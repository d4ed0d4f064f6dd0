"""
Intent normalization and vectorization.

Turns a loose, human-supplied intent record (domain, goal, density,
persona, device, accent) into a canonical Intent and then into a
fixed-length one-hot state vector for the learning system.

Unknown or missing values never raise: they canonicalize to None and
encode as an all-zero slice for that field.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Feature schema version - increment when categories or order change
FEATURE_SCHEMA_VERSION = 1

FEATURE_ORDER: Tuple[str, ...] = ("domain", "goal", "density", "persona", "device", "accent")

CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "domain": ("dashboard", "blog", "ecommerce"),
    "goal": ("browse", "compare", "checkout", "kpi-focus", "read"),
    "density": ("compact", "medium", "cozy"),
    "persona": ("new", "returning", "power"),
    "device": ("mobile", "tablet", "desktop"),
    "accent": ("cool", "warm", "neutral"),
}

FEATURE_SIZE = sum(len(CATEGORIES[name]) for name in FEATURE_ORDER)

# Loose spellings accepted at the boundary. Review whenever CATEGORIES changes.
SYNONYMS: Dict[str, Dict[str, str]] = {
    "domain": {
        "e-commerce": "ecommerce",
        "shop": "ecommerce",
        "store": "ecommerce",
        "dash": "dashboard",
    },
    "goal": {
        "kpi": "kpi-focus",
        "kpi_focus": "kpi-focus",
        "buy": "checkout",
        "purchase": "checkout",
        "reading": "read",
        "browsing": "browse",
        "compare-items": "compare",
    },
    "density": {
        "comfortable": "cozy",
        "dense": "compact",
        "normal": "medium",
    },
    "persona": {
        "power-user": "power",
        "loyal": "returning",
        "first-time": "new",
    },
    "device": {
        "pc": "desktop",
        "laptop": "desktop",
        "phone": "mobile",
        "ios": "mobile",
        "android": "mobile",
        "ipad": "tablet",
    },
    "accent": {
        "grey": "neutral",
        "gray": "neutral",
        "hot": "warm",
        "cold": "cool",
    },
}

DEFAULT_INTENT: Dict[str, str] = {
    "domain": "dashboard",
    "goal": "kpi-focus",
    "density": "medium",
    "persona": "new",
    "device": "desktop",
    "accent": "cool",
}


def _sanitize(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def canonicalize(field_name: str, value: Any) -> Optional[str]:
    """
    Map a raw field value to its canonical category.

    Args:
        field_name: One of FEATURE_ORDER
        value: Raw value (any type; None and "" mean missing)

    Returns:
        Canonical category string, or None if missing or unrecognized
    """
    categories = CATEGORIES.get(field_name)
    if categories is None:
        logger.warning(f"Unknown intent field '{field_name}'")
        return None

    cleaned = _sanitize(value)
    if not cleaned:
        return None
    if cleaned in categories:
        return cleaned

    mapped = SYNONYMS.get(field_name, {}).get(cleaned)
    if mapped in categories:
        return mapped

    logger.warning(f"Unrecognized {field_name} value '{value}', encoding as unknown")
    return None


@dataclass(frozen=True)
class Intent:
    """
    Canonical intent record.

    Every field holds either a member of CATEGORIES[field] or None
    (unknown). Build instances with Intent.from_raw() or normalize_intent()
    so that unnormalized strings never get past this module.
    """
    domain: Optional[str] = None
    goal: Optional[str] = None
    density: Optional[str] = None
    persona: Optional[str] = None
    device: Optional[str] = None
    accent: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Union["Intent", Mapping[str, Any], None]) -> "Intent":
        """Canonicalize a raw mapping. Missing fields stay None."""
        if isinstance(raw, Intent):
            return raw
        raw = raw or {}
        return cls(**{name: canonicalize(name, raw.get(name)) for name in FEATURE_ORDER})

    def with_defaults(self, defaults: Optional[Mapping[str, Any]] = None) -> "Intent":
        """Fill None fields from defaults (canonicalized)."""
        defaults = DEFAULT_INTENT if defaults is None else defaults
        values = self.to_dict()
        for name in FEATURE_ORDER:
            if values[name] is None:
                values[name] = canonicalize(name, defaults.get(name))
        return Intent(**values)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def normalize_intent(
    raw: Union[Intent, Mapping[str, Any], None],
    defaults: Optional[Mapping[str, Any]] = None,
) -> Intent:
    """
    Apply caller defaults to absent fields, then canonicalize.

    Absent or empty fields take the default. Present but unrecognized
    values become None (zero slice) rather than the default, so a typo
    is visible to the learner as "unknown".

    Args:
        raw: Decision request fields
        defaults: Per-field defaults (DEFAULT_INTENT if omitted)

    Returns:
        Canonical Intent
    """
    if isinstance(raw, Intent):
        return raw.with_defaults(defaults)

    defaults = DEFAULT_INTENT if defaults is None else defaults
    raw = raw or {}
    values: Dict[str, Optional[str]] = {}
    for name in FEATURE_ORDER:
        value = raw.get(name)
        if not _sanitize(value):
            value = defaults.get(name)
        values[name] = canonicalize(name, value)
    return Intent(**values)


def slice_bounds() -> Dict[str, Tuple[int, int]]:
    """Return the [start, end) index range of each field in the state vector."""
    bounds = {}
    start = 0
    for name in FEATURE_ORDER:
        end = start + len(CATEGORIES[name])
        bounds[name] = (start, end)
        start = end
    return bounds


def vectorize(intent: Union[Intent, Mapping[str, Any], None]) -> List[float]:
    """
    One-hot encode an intent into a state vector of length FEATURE_SIZE.

    Total: any input produces a vector of the same length. Unknown
    values yield an all-zero slice for their field.
    """
    canonical = Intent.from_raw(intent)
    vector: List[float] = []
    for name in FEATURE_ORDER:
        value = getattr(canonical, name)
        vector.extend(1.0 if value == category else 0.0 for category in CATEGORIES[name])
    return vector


def context_for(intent: Intent, default: str = "dashboard") -> str:
    """Bandit context for an intent (its domain)."""
    return intent.domain or default
