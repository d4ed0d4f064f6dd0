"""
Decision engine hyperparameters.

All parameters are clamped to safe ranges and have defaults matching
the production demo.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass
class EngineConfig:
    """
    Configuration for the hybrid bandit / value-network engine.

    Attributes:
        n_arms: Number of discrete layout actions
        replay_buffer_size: Replay buffer capacity
        batch_size: Training mini-batch size
        learning_rate: Adam step size for the value network
        epsilon: Initial exploration rate for the value network
        epsilon_decay: Multiplicative decay applied after every experience
        epsilon_min: Exploration floor
        train_every: Train once every N recorded experiences
        gamma: Discount factor for TD targets
        update_target_every: Target network sync period (training steps)
        bandit_ratio: Probability that the bandit ensemble picks the action
            (the rest goes to the value network)
        active_bandit: Authoritative bandit type (ucb, thompson, epsilon_greedy)
        ucb_c: UCB exploration coefficient
        bandit_epsilon: Exploration rate of the epsilon-greedy bandit
        exact_thompson: Sample true Beta variates instead of mean+noise
        contexts: Bandit contexts (domains)
        default_context: Fallback for unknown contexts
        hidden_sizes: Value network hidden layer widths
        save_every: Persist every N recorded experiences (0 disables)
        prng_seed: Seed for deterministic behavior (None = random)
    """
    n_arms: int = 10
    replay_buffer_size: int = 1000
    batch_size: int = 32
    learning_rate: float = 0.001
    epsilon: float = 0.3
    epsilon_decay: float = 0.995
    epsilon_min: float = 0.05
    train_every: int = 4
    gamma: float = 0.95
    update_target_every: int = 100
    bandit_ratio: float = 0.5
    active_bandit: str = "thompson"
    ucb_c: float = 2.0
    bandit_epsilon: float = 0.1
    exact_thompson: bool = False
    contexts: Tuple[str, ...] = ("dashboard", "blog", "ecommerce")
    default_context: str = "dashboard"
    hidden_sizes: Tuple[int, ...] = (64, 32)
    save_every: int = 1
    prng_seed: Optional[int] = None

    def __post_init__(self):
        """Clamp all parameters to safe ranges."""
        self.n_arms = max(1, min(100, int(self.n_arms)))
        self.replay_buffer_size = max(1, int(self.replay_buffer_size))
        self.batch_size = max(1, min(self.replay_buffer_size, int(self.batch_size)))
        self.learning_rate = max(1e-6, min(1.0, float(self.learning_rate)))
        self.epsilon = max(0.0, min(1.0, float(self.epsilon)))
        self.epsilon_decay = max(0.0, min(1.0, float(self.epsilon_decay)))
        self.epsilon_min = max(0.0, min(self.epsilon, float(self.epsilon_min)))
        self.train_every = max(1, int(self.train_every))
        self.gamma = max(0.0, min(1.0, float(self.gamma)))
        self.update_target_every = max(1, int(self.update_target_every))
        self.bandit_ratio = max(0.0, min(1.0, float(self.bandit_ratio)))
        self.ucb_c = max(0.0, float(self.ucb_c))
        self.bandit_epsilon = max(0.0, min(1.0, float(self.bandit_epsilon)))
        self.contexts = tuple(self.contexts) or ("dashboard",)
        if self.default_context not in self.contexts:
            self.default_context = self.contexts[0]
        self.hidden_sizes = tuple(max(1, int(h)) for h in self.hidden_sizes) or (64, 32)
        self.save_every = max(0, int(self.save_every))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["contexts"] = list(self.contexts)
        data["hidden_sizes"] = list(self.hidden_sizes)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Deserialize, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})


DEFAULT_ENGINE_CONFIG = EngineConfig()


class EnginePresets:
    """Pre-configured engine presets."""

    @staticmethod
    def default() -> EngineConfig:
        return EngineConfig()

    @staticmethod
    def exploratory() -> EngineConfig:
        """Slower epsilon decay and more bandit-driven selection."""
        return EngineConfig(
            epsilon=0.5,
            epsilon_decay=0.999,
            epsilon_min=0.1,
            bandit_ratio=0.7,
            active_bandit="ucb",
        )

    @staticmethod
    def deterministic_test(seed: int = 42) -> EngineConfig:
        """Seeded, small-batch configuration for tests."""
        return EngineConfig(
            batch_size=8,
            replay_buffer_size=200,
            update_target_every=10,
            save_every=0,
            prng_seed=seed,
        )
