"""Tests for reward shaping."""
import pytest

from atlas_hybrid.decision.outcome import (
    FeedbackKind,
    Outcome,
    RewardShaper,
    compute_domain_reward,
    confusion_penalty,
    norm01,
    parse_feedback,
)


class TestFeedback:
    """Tests for explicit feedback parsing."""

    def test_rewards(self):
        """like / neutral / dislike map to 1 / 0.5 / 0."""
        assert FeedbackKind.LIKE.reward == 1.0
        assert FeedbackKind.NEUTRAL.reward == 0.5
        assert FeedbackKind.DISLIKE.reward == 0.0

    def test_parse(self):
        """Strings, aliases and booleans parse."""
        assert parse_feedback("Like") is FeedbackKind.LIKE
        assert parse_feedback("neg") is FeedbackKind.DISLIKE
        assert parse_feedback(True) is FeedbackKind.LIKE
        assert parse_feedback(False) is FeedbackKind.DISLIKE
        assert parse_feedback(FeedbackKind.NEUTRAL) is FeedbackKind.NEUTRAL

    def test_parse_unknown(self):
        """Unknown values and None parse to None."""
        assert parse_feedback("meh") is None
        assert parse_feedback(None) is None


class TestConfusionPenalty:
    """Tests for confusion_penalty."""

    def test_severe(self):
        """Severity 3+ yields -0.5 * score."""
        assert confusion_penalty(0.8, 3) == pytest.approx(-0.4)
        assert confusion_penalty(1.0, 5) == pytest.approx(-0.5)

    def test_mild(self):
        """Lower severities are not penalized."""
        assert confusion_penalty(0.9, 2) == 0.0

    def test_score_clamped(self):
        """Scores outside [0, 1] are clamped."""
        assert confusion_penalty(4.0, 3) == pytest.approx(-0.5)
        assert confusion_penalty(-1.0, 3) == 0.0


class TestDomainReward:
    """Tests for compute_domain_reward."""

    def test_norm01(self):
        """norm01 rescales and clamps."""
        assert norm01(32.5, 5, 60) == pytest.approx(0.5)
        assert norm01(100, 5, 60) == 1.0
        assert norm01(1, 5, 60) == 0.0
        assert norm01(3, 3, 3) == 0.0

    def test_dashboard(self):
        """Dashboard weighs ctr, conversion and dwell."""
        reward = compute_domain_reward("dashboard", {"ctr": 1.0, "conversion": 1.0, "dwell_sec": 60})
        assert reward == pytest.approx(1.0)
        assert compute_domain_reward("dashboard", {"ctr": 0.4}) == pytest.approx(0.2)

    def test_blog_camel_case(self):
        """Blog weighs scroll depth most and accepts camelCase keys."""
        reward = compute_domain_reward("blog", {"scrollDepth": 0.9, "dwellSec": 10})
        assert reward == pytest.approx(0.6)

    def test_ecommerce(self):
        """Ecommerce weighs conversion most."""
        assert compute_domain_reward("ecommerce", {"conversion": 1.0}) == pytest.approx(0.6)

    def test_unknown_domain_uses_ctr(self):
        """Other domains reward ctr alone."""
        assert compute_domain_reward("other", {"ctr": 0.3, "conversion": 1.0}) == pytest.approx(0.3)

    def test_bad_metric_values(self):
        """Non-numeric and non-finite metrics count as zero."""
        assert compute_domain_reward("dashboard", {"ctr": "x", "conversion": float("inf")}) == 0.0


class TestRewardShaper:
    """Tests for RewardShaper."""

    def test_feedback_precedes_metrics(self):
        """Explicit feedback wins over engagement metrics."""
        outcome = Outcome(feedback=FeedbackKind.DISLIKE, metrics={"ctr": 1.0})
        assert RewardShaper().evaluate(outcome, "dashboard") == 0.0

    def test_metrics(self):
        """Without feedback the domain reward is used."""
        outcome = Outcome(metrics={"conversion": 1.0})
        assert RewardShaper().evaluate(outcome, "ecommerce") == pytest.approx(0.6)

    def test_penalty_added_and_clamped(self):
        """The confusion penalty is added; the result stays in [-1, 1]."""
        shaper = RewardShaper()
        outcome = Outcome(feedback=FeedbackKind.LIKE, confusion_score=0.6, confusion_severity=4)
        assert shaper.evaluate(outcome) == pytest.approx(0.7)
        assert shaper.evaluate(Outcome(confusion_score=1.0, confusion_severity=3)) == -0.5

    def test_nothing_observed(self):
        """No signals means zero reward."""
        assert RewardShaper().evaluate(Outcome()) == 0.0
