"""
Multi-armed bandit learners for layout action selection.

Implements UCB1, Thompson Sampling and epsilon-greedy over a fixed set
of integer arms, plus an ensemble that keeps one full set of learners
per context (domain).

Bandit math assumes rewards roughly in [0, 1]. Other finite rewards
(e.g. small negative confusion penalties) are accepted and folded into
the running means; non-finite rewards are dropped with a warning.
"""
from __future__ import annotations

import logging
import math
import numbers
import random
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONTEXTS = ("dashboard", "blog", "ecommerce")

UCB = "ucb"
THOMPSON = "thompson"
EPSILON_GREEDY = "epsilon_greedy"
BANDIT_TYPES = (UCB, THOMPSON, EPSILON_GREEDY)

_TYPE_ALIASES = {
    "ucb": UCB,
    "ucb1": UCB,
    "thompson": THOMPSON,
    "thompson_sampling": THOMPSON,
    "thompsonsampling": THOMPSON,
    "epsilon_greedy": EPSILON_GREEDY,
    "epsilongreedy": EPSILON_GREEDY,
    "egreedy": EPSILON_GREEDY,
}


def resolve_bandit_type(name: Any) -> Optional[str]:
    """Map a bandit algorithm name (including camelCase aliases) to its key."""
    if not isinstance(name, str):
        return None
    key = name.strip().lower().replace("-", "_")
    return _TYPE_ALIASES.get(key)


def _argmax(values: List[float]) -> int:
    """Index of the first maximum."""
    best = 0
    for i in range(1, len(values)):
        if values[i] > values[best]:
            best = i
    return best


class _ArmBandit:
    """Shared arm validation and seeding for the concrete bandits."""

    name = "base"

    def __init__(self, n_arms: int = 10, prng_seed: Optional[int] = None):
        self.n_arms = max(1, int(n_arms))
        self.rng = random.Random(prng_seed)

    def _accept(self, arm: Any, reward: Any) -> Optional[float]:
        """Validate an update. Returns the reward as float, or None to skip."""
        if isinstance(arm, bool) or not isinstance(arm, numbers.Integral) or not 0 <= arm < self.n_arms:
            logger.warning(f"[{self.name}] Ignoring update for invalid arm {arm!r}")
            return None
        try:
            value = float(reward)
        except (TypeError, ValueError):
            logger.warning(f"[{self.name}] Ignoring non-numeric reward {reward!r}")
            return None
        if not math.isfinite(value):
            logger.warning(f"[{self.name}] Ignoring non-finite reward {reward!r}")
            return None
        return value

    def _snapshot_floats(self, values: Any) -> Optional[List[float]]:
        """Per-arm finite floats from a snapshot, or None if unusable."""
        if not isinstance(values, (list, tuple)) or len(values) != self.n_arms:
            return None
        try:
            floats = [float(v) for v in values]
        except (TypeError, ValueError):
            return None
        if not all(math.isfinite(v) for v in floats):
            return None
        return floats

    def _snapshot_counts(self, counts: Any) -> Optional[List[int]]:
        """Per-arm non-negative pull counts from a snapshot, or None if unusable."""
        floats = self._snapshot_floats(counts)
        if floats is None or any(c < 0 for c in floats):
            return None
        return [int(c) for c in floats]


class UCB1Bandit(_ArmBandit):
    """
    Upper Confidence Bound (UCB1) bandit.

    Pulls every untried arm once, then picks
    argmax(value[a] + c * sqrt(2 * ln(total) / count[a])).
    """

    name = UCB

    def __init__(self, n_arms: int = 10, c: float = 2.0, prng_seed: Optional[int] = None):
        super().__init__(n_arms, prng_seed)
        self.c = max(0.0, float(c))
        self.counts = [0] * self.n_arms
        self.values = [0.0] * self.n_arms
        self.total_count = 0

    def select_arm(self, context_state: Optional[List[float]] = None) -> int:
        for arm, count in enumerate(self.counts):
            if count == 0:
                return arm

        log_total = math.log(self.total_count)
        scores = [
            self.values[arm] + self.c * math.sqrt(2.0 * log_total / self.counts[arm])
            for arm in range(self.n_arms)
        ]
        return _argmax(scores)

    def update(self, arm: int, reward: float) -> None:
        value = self._accept(arm, reward)
        if value is None:
            return
        self.counts[arm] += 1
        self.total_count += 1
        self.values[arm] += (value - self.values[arm]) / self.counts[arm]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "counts": list(self.counts),
            "values": list(self.values),
            "total_count": self.total_count,
            "c": self.c,
        }

    def restore(self, data: Dict[str, Any]) -> None:
        """Restore counters. total_count is always the sum of the arm counts."""
        counts = self._snapshot_counts(data.get("counts"))
        values = self._snapshot_floats(data.get("values"))
        if counts is None or values is None:
            logger.warning("[ucb] Snapshot counts or values unusable, keeping fresh state")
            return
        total = data.get("total_count", sum(counts))
        if total != sum(counts):
            logger.warning(
                f"[ucb] Snapshot total_count {total!r} != sum of counts {sum(counts)}, keeping fresh state"
            )
            return
        self.counts = counts
        self.values = values
        self.total_count = sum(counts)

    def reset(self) -> None:
        self.counts = [0] * self.n_arms
        self.values = [0.0] * self.n_arms
        self.total_count = 0


class ThompsonSamplingBandit(_ArmBandit):
    """
    Thompson Sampling with Beta(alpha, beta) posteriors per arm.

    By default draws from a bounded approximation: the posterior mean
    plus uniform noise scaled by the posterior standard deviation,
    clamped to [0, 1]. The approximation is biased toward the mean for
    small pseudo-counts. Pass exact=True to sample a true Beta variate.

    An update counts as a success when reward > 0.5.
    """

    name = THOMPSON

    def __init__(self, n_arms: int = 10, exact: bool = False, prng_seed: Optional[int] = None):
        super().__init__(n_arms, prng_seed)
        self.exact = exact
        self.alpha = [1.0] * self.n_arms
        self.beta = [1.0] * self.n_arms

    def _sample(self, alpha: float, beta: float) -> float:
        if self.exact:
            return self.rng.betavariate(alpha, beta)
        total = alpha + beta
        mean = alpha / total
        variance = (alpha * beta) / (total * total * (total + 1.0))
        noise = (self.rng.random() - 0.5) * math.sqrt(variance) * 6.0
        return max(0.0, min(1.0, mean + noise))

    def select_arm(self, context_state: Optional[List[float]] = None) -> int:
        samples = [self._sample(self.alpha[arm], self.beta[arm]) for arm in range(self.n_arms)]
        return _argmax(samples)

    def update(self, arm: int, reward: float) -> None:
        value = self._accept(arm, reward)
        if value is None:
            return
        if value > 0.5:
            self.alpha[arm] += 1.0
        else:
            self.beta[arm] += 1.0

    def means(self) -> List[float]:
        return [a / (a + b) for a, b in zip(self.alpha, self.beta)]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "alpha": list(self.alpha),
            "beta": list(self.beta),
            "means": self.means(),
        }

    def restore(self, data: Dict[str, Any]) -> None:
        alpha = self._snapshot_floats(data.get("alpha"))
        beta = self._snapshot_floats(data.get("beta"))
        if alpha is None or beta is None:
            logger.warning("[thompson] Snapshot alpha or beta unusable, keeping fresh state")
            return
        self.alpha = [max(1.0, a) for a in alpha]
        self.beta = [max(1.0, b) for b in beta]

    def reset(self) -> None:
        self.alpha = [1.0] * self.n_arms
        self.beta = [1.0] * self.n_arms


class EpsilonGreedyBandit(_ArmBandit):
    """Epsilon-greedy over incrementally updated running means."""

    name = EPSILON_GREEDY

    def __init__(self, n_arms: int = 10, epsilon: float = 0.1, prng_seed: Optional[int] = None):
        super().__init__(n_arms, prng_seed)
        self.epsilon = max(0.0, min(1.0, float(epsilon)))
        self.counts = [0] * self.n_arms
        self.values = [0.0] * self.n_arms

    def select_arm(self, context_state: Optional[List[float]] = None) -> int:
        if self.rng.random() < self.epsilon:
            return self.rng.randrange(self.n_arms)
        return _argmax(self.values)

    def update(self, arm: int, reward: float) -> None:
        value = self._accept(arm, reward)
        if value is None:
            return
        self.counts[arm] += 1
        self.values[arm] += (value - self.values[arm]) / self.counts[arm]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "counts": list(self.counts),
            "values": list(self.values),
            "epsilon": self.epsilon,
        }

    def restore(self, data: Dict[str, Any]) -> None:
        counts = self._snapshot_counts(data.get("counts"))
        values = self._snapshot_floats(data.get("values"))
        if counts is None or values is None:
            logger.warning("[epsilon_greedy] Snapshot counts or values unusable, keeping fresh state")
            return
        self.counts = counts
        self.values = values

    def reset(self) -> None:
        self.counts = [0] * self.n_arms
        self.values = [0.0] * self.n_arms


class MultiContextBanditEnsemble:
    """
    One UCB1, Thompson and epsilon-greedy learner per context.

    The active type answers select_arm(); every learner of the context
    receives every update so switching the active type keeps history.
    Unknown contexts fall back to the default context with a warning.
    """

    def __init__(
        self,
        contexts: Iterable[str] = DEFAULT_CONTEXTS,
        n_arms: int = 10,
        active: str = THOMPSON,
        default_context: str = "dashboard",
        ucb_c: float = 2.0,
        epsilon: float = 0.1,
        exact_thompson: bool = False,
        prng_seed: Optional[int] = None,
    ):
        self.contexts = tuple(contexts) or DEFAULT_CONTEXTS
        self.n_arms = max(1, int(n_arms))
        self.default_context = default_context if default_context in self.contexts else self.contexts[0]

        seeder = random.Random(prng_seed)

        def child_seed() -> Optional[int]:
            return seeder.randrange(2 ** 32) if prng_seed is not None else None

        self.bandits: Dict[str, Dict[str, _ArmBandit]] = {}
        for context in self.contexts:
            self.bandits[context] = {
                UCB: UCB1Bandit(self.n_arms, c=ucb_c, prng_seed=child_seed()),
                THOMPSON: ThompsonSamplingBandit(
                    self.n_arms, exact=exact_thompson, prng_seed=child_seed()
                ),
                EPSILON_GREEDY: EpsilonGreedyBandit(
                    self.n_arms, epsilon=epsilon, prng_seed=child_seed()
                ),
            }

        self.active_type = resolve_bandit_type(active) or THOMPSON

    def resolve_context(self, context: Optional[str]) -> str:
        if context in self.bandits:
            return context
        logger.warning(
            f"[BanditEnsemble] Unknown context '{context}', using '{self.default_context}'"
        )
        return self.default_context

    def get_bandit(self, context: Optional[str], bandit_type: Optional[str] = None) -> _ArmBandit:
        """Learner for a context (active type unless bandit_type is given)."""
        key = resolve_bandit_type(bandit_type) if bandit_type else self.active_type
        return self.bandits[self.resolve_context(context)][key or self.active_type]

    def select_arm(self, context: Optional[str]) -> int:
        return self.get_bandit(context).select_arm()

    def update(self, context: Optional[str], arm: int, reward: float) -> None:
        for bandit in self.bandits[self.resolve_context(context)].values():
            bandit.update(arm, reward)

    def set_active(self, bandit_type: str) -> bool:
        """Switch the authoritative learner type. Returns False for unknown names."""
        key = resolve_bandit_type(bandit_type)
        if key is None:
            logger.warning(f"[BanditEnsemble] Unknown bandit type '{bandit_type}'")
            return False
        self.active_type = key
        logger.info(f"[BanditEnsemble] Switched to {key}")
        return True

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_bandit": self.active_type,
            "contexts": {
                context: {name: bandit.get_stats() for name, bandit in bandits.items()}
                for context, bandits in self.bandits.items()
            },
        }

    def to_dict(self) -> Dict[str, Any]:
        return self.get_stats()

    def restore(self, data: Dict[str, Any]) -> None:
        """Restore counters from a to_dict() snapshot. Unknown contexts are skipped."""
        active = resolve_bandit_type(data.get("active_bandit"))
        if active:
            self.active_type = active
        for context, snapshots in (data.get("contexts") or {}).items():
            if context not in self.bandits:
                logger.warning(f"[BanditEnsemble] Skipping snapshot for unknown context '{context}'")
                continue
            for name, snapshot in snapshots.items():
                key = resolve_bandit_type(name)
                if key and isinstance(snapshot, dict):
                    self.bandits[context][key].restore(snapshot)

    def reset(self) -> None:
        for bandits in self.bandits.values():
            for bandit in bandits.values():
                bandit.reset()
