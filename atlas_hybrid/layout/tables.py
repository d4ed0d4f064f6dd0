"""
Per-domain layout action tables.

Each of the ten actions maps to a fixed variation: how many primary items
to show (KPIs, articles, products), their size tier, the grid column count
and a named layout style. Static data; nothing here is learned.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

N_ACTIONS = 10


@dataclass(frozen=True)
class ActionVariation:
    """Layout parameters selected by one action."""
    item_count: int
    item_size: str
    grid_cols: int
    layout: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_count": self.item_count,
            "item_size": self.item_size,
            "grid_cols": self.grid_cols,
            "layout": self.layout,
        }


def _table(*rows: Tuple[int, str, int, str]) -> Tuple[ActionVariation, ...]:
    table = tuple(ActionVariation(*row) for row in rows)
    if len(table) != N_ACTIONS:
        raise ValueError(f"Action table needs {N_ACTIONS} rows, got {len(table)}")
    return table


# dashboard: KPI count / KPI size
DASHBOARD_ACTIONS = _table(
    (2, "large", 2, "minimal"),
    (3, "medium", 3, "balanced"),
    (4, "medium", 2, "grid-2x2"),
    (4, "small", 4, "compact-row"),
    (6, "small", 3, "dense-3x2"),
    (6, "small", 2, "vertical"),
    (3, "large", 1, "stacked"),
    (5, "medium", 3, "asymmetric"),
    (8, "tiny", 4, "dashboard-heavy"),
    (4, "medium", 2, "classic"),
)

# blog: article count / preview size
BLOG_ACTIONS = _table(
    (2, "large", 1, "featured"),
    (3, "medium", 2, "magazine"),
    (4, "medium", 2, "grid"),
    (6, "small", 3, "compact"),
    (4, "large", 1, "longform"),
    (5, "medium", 2, "mixed"),
    (8, "tiny", 4, "dense"),
    (3, "large", 1, "editorial"),
    (6, "medium", 3, "balanced"),
    (4, "medium", 2, "standard"),
)

# ecommerce: product count / tile size
ECOMMERCE_ACTIONS = _table(
    (3, "large", 3, "showcase"),
    (4, "medium", 2, "featured"),
    (6, "medium", 3, "standard"),
    (8, "small", 4, "compact"),
    (4, "large", 2, "premium"),
    (6, "medium", 2, "gallery"),
    (9, "small", 3, "catalog"),
    (5, "medium", 3, "asymmetric"),
    (12, "tiny", 4, "browse-heavy"),
    (6, "medium", 3, "balanced"),
)

ACTION_TABLES: Dict[str, Tuple[ActionVariation, ...]] = {
    "dashboard": DASHBOARD_ACTIONS,
    "blog": BLOG_ACTIONS,
    "ecommerce": ECOMMERCE_ACTIONS,
}

DEFAULT_TABLE_DOMAIN = "dashboard"


def variation_for(domain: Optional[str], action: Optional[int]) -> Optional[ActionVariation]:
    """
    Look up the variation for a validated action.

    Unknown domains use the dashboard table. A None action means
    "no variation".
    """
    if action is None:
        return None
    table = ACTION_TABLES.get(domain or DEFAULT_TABLE_DOMAIN, ACTION_TABLES[DEFAULT_TABLE_DOMAIN])
    return table[action]
