"""
Learning layer for the decision engine.

Design:
- Per-context multi-armed bandits (UCB1, Thompson Sampling, epsilon-greedy)
- A small torch value network trained on replay batches (DQN)
- Atomic file persistence for weights and learner state
"""

from .bandit import (
    BANDIT_TYPES,
    EpsilonGreedyBandit,
    MultiContextBanditEnsemble,
    ThompsonSamplingBandit,
    UCB1Bandit,
    resolve_bandit_type,
)
from .learning_config import DEFAULT_ENGINE_CONFIG, EngineConfig, EnginePresets
from .persistence_hooks import EnginePersistence
from .replay_buffer import Experience, ExperienceReplayBuffer
from .value_network import DQNAgent, ValueNetwork

__all__ = [
    "BANDIT_TYPES",
    "EpsilonGreedyBandit",
    "MultiContextBanditEnsemble",
    "ThompsonSamplingBandit",
    "UCB1Bandit",
    "resolve_bandit_type",
    "DEFAULT_ENGINE_CONFIG",
    "EngineConfig",
    "EnginePresets",
    "EnginePersistence",
    "Experience",
    "ExperienceReplayBuffer",
    "DQNAgent",
    "ValueNetwork",
]
