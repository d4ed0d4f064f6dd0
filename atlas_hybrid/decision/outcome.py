"""
Reward shaping for layout feedback.

Converts observable outcomes (explicit like/dislike feedback, an already
computed confusion score, page engagement metrics) into scalar rewards
for the decision engine.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

logger = logging.getLogger(__name__)

# Confusion levels at or above this severity penalize the last action
CONFUSION_SEVERITY_THRESHOLD = 3
CONFUSION_PENALTY_SCALE = 0.5


class FeedbackKind(str, Enum):
    """Explicit user feedback and its reward value."""
    LIKE = "like"
    NEUTRAL = "neutral"
    DISLIKE = "dislike"

    @property
    def reward(self) -> float:
        return _FEEDBACK_REWARDS[self]


_FEEDBACK_REWARDS = {
    FeedbackKind.LIKE: 1.0,
    FeedbackKind.NEUTRAL: 0.5,
    FeedbackKind.DISLIKE: 0.0,
}

_FEEDBACK_ALIASES = {
    "pos": FeedbackKind.LIKE,
    "positive": FeedbackKind.LIKE,
    "up": FeedbackKind.LIKE,
    "partial": FeedbackKind.NEUTRAL,
    "neg": FeedbackKind.DISLIKE,
    "negative": FeedbackKind.DISLIKE,
    "down": FeedbackKind.DISLIKE,
}


def parse_feedback(value: Union[FeedbackKind, str, bool, None]) -> Optional[FeedbackKind]:
    """
    Parse a feedback value.

    Booleans map to like/dislike. Unknown strings return None.
    """
    if isinstance(value, FeedbackKind):
        return value
    if isinstance(value, bool):
        return FeedbackKind.LIKE if value else FeedbackKind.DISLIKE
    if value is None:
        return None
    key = str(value).strip().lower()
    try:
        return FeedbackKind(key)
    except ValueError:
        kind = _FEEDBACK_ALIASES.get(key)
        if kind is None:
            logger.warning(f"Unknown feedback kind '{value}'")
        return kind


def confusion_penalty(score: float, severity: int) -> float:
    """
    Penalty for a detected confusion episode.

    Args:
        score: Confusion score in [0, 1]
        severity: Confusion level severity (higher is worse)

    Returns:
        -0.5 * score for severe confusion, otherwise 0.0

    Examples:
        >>> confusion_penalty(0.8, 3)
        -0.4
        >>> confusion_penalty(0.8, 2)
        0.0
    """
    if severity < CONFUSION_SEVERITY_THRESHOLD:
        return 0.0
    score = max(0.0, min(1.0, float(score)))
    return -CONFUSION_PENALTY_SCALE * score


def norm01(x: float, lo: float, hi: float) -> float:
    """Linearly rescale x from [lo, hi] into [0, 1], clamped."""
    if hi == lo:
        return 0.0
    return max(0.0, min(1.0, (x - lo) / (hi - lo)))


def _metric(metrics: Mapping[str, Any], *names: str) -> float:
    for name in names:
        value = metrics.get(name)
        if value is None:
            continue
        try:
            value = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value):
            return value
    return 0.0


def compute_domain_reward(domain: Optional[str], metrics: Mapping[str, Any]) -> float:
    """
    Per-domain engagement reward.

    Args:
        domain: dashboard, blog or ecommerce (anything else uses ctr only)
        metrics: ctr, conversion, dwell_sec, scroll_depth (camelCase accepted)

    Returns:
        Weighted reward, roughly in [0, 1] for normalized inputs
    """
    metrics = metrics or {}
    ctr = _metric(metrics, "ctr")
    conversion = _metric(metrics, "conversion")
    dwell = _metric(metrics, "dwell_sec", "dwellSec")
    scroll = _metric(metrics, "scroll_depth", "scrollDepth")

    if domain == "dashboard":
        return 0.5 * ctr + 0.3 * conversion + 0.2 * norm01(dwell, 5, 60)
    if domain == "blog":
        return 0.6 * norm01(scroll, 0.2, 0.9) + 0.2 * ctr + 0.2 * norm01(dwell, 10, 120)
    if domain == "ecommerce":
        return 0.6 * conversion + 0.2 * ctr + 0.2 * norm01(dwell, 5, 60)
    return ctr


@dataclass
class Outcome:
    """
    Observed outcome of a layout decision.

    Attributes:
        feedback: Explicit feedback (if any)
        confusion_score: Confusion score from an external detector
        confusion_severity: Severity level of that confusion
        metrics: Engagement metrics for compute_domain_reward
    """
    feedback: Optional[FeedbackKind] = None
    confusion_score: float = 0.0
    confusion_severity: int = 0
    metrics: Optional[Mapping[str, Any]] = None


class RewardShaper:
    """
    Combines outcome signals into a single reward in [-1, 1].

    Explicit feedback takes precedence over engagement metrics; the
    confusion penalty is added on top.
    """

    def evaluate(self, outcome: Outcome, domain: Optional[str] = None) -> float:
        if outcome.feedback is not None:
            reward = outcome.feedback.reward
        elif outcome.metrics:
            reward = compute_domain_reward(domain, outcome.metrics)
        else:
            reward = 0.0

        reward += confusion_penalty(outcome.confusion_score, outcome.confusion_severity)
        return max(-1.0, min(1.0, reward))
