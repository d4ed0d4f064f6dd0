"""
Tests for the component composer.

Validates that:
- Every slot receives exactly one component
- Scores stay within [0, 100]
- Explicit slot matches win, and an empty registry falls back to atlas-card
- The composition is sorted by slot priority
"""
import pytest

from atlas_hybrid.compose.composer import (
    ComponentComposer,
    kpi_label,
    mock_kpi_value,
    name_tokens,
    slot_name_bonus,
)
from atlas_hybrid.compose.registry import FALLBACK_TAG, AffordanceRegistry
from atlas_hybrid.intent import Intent
from atlas_hybrid.layout.generator import LayoutGenerator

DASHBOARD = {"domain": "dashboard", "goal": "kpi-focus", "density": "medium", "device": "desktop"}
SHOP = {"domain": "ecommerce", "goal": "browse", "density": "medium", "device": "desktop"}


@pytest.fixture
def registry():
    registry = AffordanceRegistry()
    registry.register_defaults()
    return registry


@pytest.fixture
def composer(registry):
    return ComponentComposer(registry)


@pytest.fixture
def generator():
    return LayoutGenerator()


def _by_slot(composition):
    return {c.slot: c for c in composition}


class TestCompose:
    """Tests for compose()."""

    def test_one_component_per_slot(self, composer, generator):
        """Every slot appears exactly once."""
        layout = generator.generate(DASHBOARD, 2)
        composition = composer.compose(layout, DASHBOARD)
        assert sorted(c.slot for c in composition) == sorted(s.name for s in layout.slots)

    def test_kpis_get_kpi_component(self, composer, generator):
        """KPI slots resolve to atlas-kpi with value and label props."""
        layout = generator.generate(DASHBOARD, 2)
        assigned = _by_slot(composer.compose(layout, DASHBOARD))
        kpi = assigned["kpi-1"]
        assert kpi.component == "atlas-kpi"
        assert kpi.props["label"] == "Revenue"
        assert 0 <= kpi.props["value"] < 100
        assert kpi.props["data-size"] == "medium"
        assert kpi.props["data-priority"] == 10

    def test_explicit_matches(self, composer, generator):
        """Well-known slots use the override table with score 100."""
        layout = generator.generate(SHOP, 2)
        assigned = _by_slot(composer.compose(layout, SHOP))
        assert assigned["products"].component == "atlas-product-grid"
        assert assigned["products"].score == 100
        assert assigned["filters"].component == "atlas-filter-panel"
        assert assigned["header"].component == "atlas-header"

    def test_grid_props(self, composer, generator):
        """Product grids receive the grid column count and item count."""
        layout = generator.generate(SHOP, 2)
        products = _by_slot(composer.compose(layout, SHOP))["products"]
        assert products.props["cols"] == layout.grid.cols
        assert products.props["data-item-count"] == 6

    def test_sorted_by_priority(self, composer, generator):
        """The composition is ordered by descending slot priority."""
        layout = generator.generate(DASHBOARD, 4)
        priorities = [c.priority for c in composer.compose(layout, DASHBOARD)]
        assert priorities == sorted(priorities, reverse=True)

    def test_scores_bounded(self, composer, generator):
        """All scores stay in [0, 100]."""
        for intent in (DASHBOARD, SHOP, {"domain": "blog", "goal": "read", "device": "mobile"}):
            for action in (None, 0, 5, 9):
                layout = generator.generate(intent, action)
                for assignment in composer.compose(layout, intent):
                    assert 0 <= assignment.score <= 100

    def test_empty_registry_falls_back(self, generator):
        """With no components every slot gets atlas-card at score 1 or less."""
        composer = ComponentComposer(AffordanceRegistry())
        layout = generator.generate(DASHBOARD, 2)
        for assignment in composer.compose(layout, DASHBOARD):
            assert assignment.component == FALLBACK_TAG
            assert assignment.score <= 1

    def test_deterministic(self, composer, generator):
        """Same inputs give the same composition."""
        layout = generator.generate(SHOP, 3)
        first = [c.to_dict() for c in composer.compose(layout, SHOP)]
        second = [c.to_dict() for c in composer.compose(layout, SHOP)]
        assert first == second

    def test_to_dict_shape(self, composer, generator):
        """Serialized assignments nest scoring details under metadata."""
        layout = generator.generate(DASHBOARD, 2)
        data = composer.compose(layout, DASHBOARD)[0].to_dict()
        assert set(data) == {"slot", "component", "props", "priority", "metadata"}
        assert "score" in data["metadata"]


class TestScoring:
    """Tests for score_component and name heuristics."""

    def test_generic_component_scores(self, registry, generator):
        """Components without contexts or goals still score."""
        registry.register("x-generic", {"capabilities": ["display-metric"], "priority": 1})
        layout = generator.generate(DASHBOARD, 2)
        slot = [s for s in layout.slots if s.name == "kpi-1"][0]
        composer = ComponentComposer(registry)
        score = composer.score_component(slot, registry.get("x-generic"), Intent.from_raw(DASHBOARD))
        # 1/3 caps -> 13.33, generic context 10, generic goal 8, priority 1
        assert score == pytest.approx(40 / 3 + 10 + 8 + 1)

    def test_name_tokens(self):
        """Names are split, unprefixed and singularized."""
        assert name_tokens("atlas-product-grid") == ["product", "grid"]
        assert name_tokens("AtlasKPI") == ["kpi"]
        assert name_tokens("") == []

    def test_slot_name_bonus(self):
        """Name bonus rewards overlap and semantic synonyms, capped at 25."""
        assert slot_name_bonus("products", "atlas-product-grid") == 22
        assert slot_name_bonus("feed", "atlas-grid") == 18
        assert slot_name_bonus("kpi-2", "atlas-kpi") == 13
        assert slot_name_bonus("details", "atlas-hero") == 0


class TestCompositionResult:
    """Tests for CompositionResult."""

    def test_validate(self, composer, generator):
        """A full composition validates."""
        layout = generator.generate(DASHBOARD, 2)
        result = composer.compose_result(layout, DASHBOARD, source="test")
        assert result.validate()
        data = result.to_dict()
        assert data["metadata"]["total_components"] == len(layout.slots)
        assert data["metadata"]["source"] == "test"

    def test_missing_slots(self, composer, generator):
        """Dropping an assignment is reported."""
        layout = generator.generate(DASHBOARD, 2)
        result = composer.compose_result(layout, DASHBOARD)
        dropped = result.components.pop()
        assert result.missing_slots() == [dropped.slot]
        assert not result.validate()


class TestKpiHelpers:
    """Tests for KPI labels and values."""

    def test_labels(self):
        """Indexed KPIs cycle through the label list."""
        assert kpi_label("kpi-1") == "Revenue"
        assert kpi_label("kpi-2") == "Users"
        assert kpi_label("kpi-13") == "Revenue"
        assert kpi_label("metric") == "Performance"
        assert kpi_label("other") == "Metric"

    def test_value_stable(self):
        """Values are stable per layout and slot."""
        assert mock_kpi_value("layout-a", "kpi-1") == mock_kpi_value("layout-a", "kpi-1")
        assert 0 <= mock_kpi_value("layout-b", "kpi-3") < 100
