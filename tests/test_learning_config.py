"""Tests for engine hyperparameters and presets."""
from atlas_hybrid.learning.learning_config import EngineConfig, EnginePresets


class TestEngineConfig:
    """Tests for EngineConfig clamping and serialization."""

    def test_defaults(self):
        """Defaults match the documented values."""
        config = EngineConfig()
        assert config.n_arms == 10
        assert config.bandit_ratio == 0.5
        assert config.active_bandit == "thompson"
        assert config.epsilon == 0.3
        assert config.epsilon_min == 0.05

    def test_clamping(self):
        """Out-of-range values are clamped."""
        config = EngineConfig(
            bandit_ratio=1.5,
            epsilon=-0.2,
            epsilon_min=0.5,
            batch_size=5000,
            replay_buffer_size=100,
            train_every=0,
        )
        assert config.bandit_ratio == 1.0
        assert config.epsilon == 0.0
        assert config.epsilon_min == 0.0
        assert config.batch_size == 100
        assert config.train_every == 1

    def test_default_context_must_exist(self):
        """An unknown default context falls back to the first context."""
        config = EngineConfig(contexts=("blog", "ecommerce"), default_context="dashboard")
        assert config.default_context == "blog"

    def test_dict_roundtrip_ignores_unknown(self):
        """from_dict(to_dict()) is lossless and skips unknown keys."""
        config = EngineConfig(bandit_ratio=0.8, hidden_sizes=(16,))
        data = config.to_dict()
        data["not_a_field"] = 1
        assert EngineConfig.from_dict(data) == config


class TestPresets:
    """Tests for EnginePresets."""

    def test_exploratory(self):
        """Exploratory favors the bandits and UCB."""
        config = EnginePresets.exploratory()
        assert config.bandit_ratio == 0.7
        assert config.active_bandit == "ucb"

    def test_deterministic_test(self):
        """The test preset is seeded and never autosaves."""
        config = EnginePresets.deterministic_test(seed=7)
        assert config.prng_seed == 7
        assert config.save_every == 0
        assert config.batch_size == 8
