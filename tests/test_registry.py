"""Tests for the affordance registry."""
import pytest

from atlas_hybrid.compose.registry import (
    DEFAULT_COMPONENTS,
    FALLBACK_TAG,
    Affordance,
    AffordanceRegistry,
    infer_slot_capabilities,
    slot_base,
)


@pytest.fixture
def registry():
    registry = AffordanceRegistry()
    registry.register_defaults()
    return registry


class AtlasSparkline:
    """Component class exposing a static descriptor."""

    @staticmethod
    def affordance():
        return {"capabilities": ["display-metric", "sparkline"], "contexts": ["dashboard"], "priority": 6}

    @staticmethod
    def style_tokens():
        return ["--accent"]


class TestRegistration:
    """Tests for register / register_defaults."""

    def test_defaults(self, registry):
        """All built-in primitives are registered in order."""
        assert len(registry) == len(DEFAULT_COMPONENTS) == 9
        assert [e.tag for e in registry] == list(DEFAULT_COMPONENTS)

    def test_register_mapping(self):
        """Plain mappings are accepted."""
        registry = AffordanceRegistry()
        assert registry.register("x-chart", {"capabilities": ["chart"], "priority": 4})
        entry = registry.get("x-chart")
        assert entry.affordance.capabilities == ("chart",)
        assert entry.affordance.contexts is None

    def test_register_class(self):
        """Objects with affordance() and style_tokens() are accepted."""
        registry = AffordanceRegistry()
        assert registry.register("atlas-sparkline", AtlasSparkline)
        entry = registry.get("atlas-sparkline")
        assert entry.affordance.style_tokens == ("--accent",)
        assert entry.component_name == "AtlasSparkline"

    def test_missing_descriptor(self):
        """Objects without a descriptor are rejected."""
        registry = AffordanceRegistry()
        assert not registry.register("x-plain", object())
        assert not registry.register("x-empty", {"label": "nothing"})
        assert len(registry) == 0

    def test_reregister_replaces_index(self, registry):
        """Re-registering a tag drops its old index entries."""
        registry.register("atlas-kpi", Affordance(capabilities=("gauge",), contexts=("blog",)))
        assert "atlas-kpi" not in registry.find_by_capability("kpi")
        assert registry.find_by_capability("gauge") == ["atlas-kpi"]
        assert "atlas-kpi" not in registry.find_by_context("dashboard")
        assert len(registry) == 9


class TestLookup:
    """Tests for index lookups."""

    def test_find_by_capability(self, registry):
        """Capability index returns tags in registration order."""
        assert registry.find_by_capability("display-product") == ["atlas-product-tile", "atlas-product-grid"]
        assert registry.find_by_capability("teleport") == []

    def test_find_by_context_and_goal(self, registry):
        """Context and goal indices are populated."""
        assert registry.find_by_context("dashboard") == ["atlas-header", "atlas-card", "atlas-kpi", "atlas-grid"]
        assert "atlas-kpi" in registry.find_by_goal("kpi-focus")

    def test_lookup_results_are_copies(self, registry):
        """Mutating a lookup result does not touch the index."""
        registry.find_by_capability("kpi").append("x")
        assert registry.find_by_capability("kpi") == ["atlas-kpi"]

    def test_find_best_match(self, registry):
        """Slot names pick their natural component."""
        shop = {"domain": "ecommerce", "goal": "browse"}
        assert registry.find_best_match("products", shop) == "atlas-product-grid"
        assert registry.find_best_match("kpi-1", {"domain": "dashboard", "goal": "kpi-focus"}) == "atlas-kpi"

    def test_find_best_match_fallback(self):
        """An empty registry falls back to the default card."""
        assert AffordanceRegistry().find_best_match("kpi-1", {}) == FALLBACK_TAG


class TestIntrospection:
    """Tests for stats and inspect."""

    def test_stats(self, registry):
        """get_stats reports sizes of every index."""
        stats = registry.get_stats()
        assert stats["total_components"] == 9
        assert stats["contexts"] == 3
        assert stats["goals"] == 5
        assert stats["components"][0] == "atlas-header"

    def test_inspect(self, registry):
        """inspect returns the descriptor or an error."""
        assert registry.inspect("atlas-kpi")["affordance"]["priority"] == 10
        assert "error" in registry.inspect("atlas-missing")


class TestHelpers:
    """Tests for slot name helpers."""

    def test_slot_base(self):
        """Trailing indices are stripped."""
        assert slot_base("kpi-12") == "kpi"
        assert slot_base("compare-item-2") == "compare-item"
        assert slot_base("products") == "products"

    def test_infer_slot_capabilities(self):
        """Slot names suggest capabilities."""
        assert "kpi" in infer_slot_capabilities("kpi-3")
        assert infer_slot_capabilities("mystery") == []
