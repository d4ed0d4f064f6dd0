"""
Decision layer: hybrid action selection and reward shaping.

The engine picks one of a fixed set of layout actions per request,
either from the per-context bandits or from the value network, and
learns from the rewards reported back.
"""

from .engine import ActionChoice, DecisionEngine, EngineInitError
from .outcome import FeedbackKind, Outcome, RewardShaper, compute_domain_reward, confusion_penalty

__all__ = [
    "ActionChoice",
    "DecisionEngine",
    "EngineInitError",
    "FeedbackKind",
    "Outcome",
    "RewardShaper",
    "compute_domain_reward",
    "confusion_penalty",
]
