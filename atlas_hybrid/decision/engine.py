"""
Hybrid decision engine.

Blends a per-context bandit ensemble (fast adaptation) with a DQN-style
value network (generalization across intents). Each selection goes to
the bandits with probability `bandit_ratio`, otherwise to the value
network with a shared, decaying epsilon.

Lifecycle:
    engine = DecisionEngine(config, persistence=EnginePersistence(path))
    engine.load()
    action = engine.select_action(state, "dashboard")
    engine.record_experience(state, action, 1.0, next_state, False, "dashboard")
"""
from __future__ import annotations

import logging
import math
import numbers
import random
import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional, Sequence

from ..errors import EngineInitError
from ..events import ACTION_SELECTED, FEEDBACK_RECORDED, EventBus
from ..intent import FEATURE_SIZE
from ..learning.bandit import MultiContextBanditEnsemble
from ..learning.learning_config import EngineConfig
from ..learning.persistence_hooks import EnginePersistence
from ..learning.replay_buffer import Experience, ExperienceReplayBuffer
from ..learning.value_network import DQNAgent

logger = logging.getLogger(__name__)

__all__ = ["ActionChoice", "DecisionEngine", "EngineInitError"]

SOURCE_BANDIT = "bandit"
SOURCE_VALUE_NETWORK = "value_network"

MAX_EPISODE_HISTORY = 100


@dataclass(frozen=True)
class ActionChoice:
    """A selected action and where it came from."""
    action: int
    source: str
    context: str
    epsilon: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "source": self.source,
            "context": self.context,
            "epsilon": self.epsilon,
        }


class DecisionEngine:
    """
    Orchestrates action selection, learning and persistence.

    Construction is all-or-nothing: any failure while building the
    learners raises EngineInitError and leaves no partially usable
    instance behind.

    All mutating operations hold a single re-entrant lock, so
    select_action() and record_experience() never interleave.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        input_size: int = FEATURE_SIZE,
        persistence: Optional[EnginePersistence] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config or EngineConfig()
        self.input_size = int(input_size)
        self.persistence = persistence
        self.event_bus = event_bus
        self._lock = threading.RLock()

        cfg = self.config
        seeder = random.Random(cfg.prng_seed)

        def child_seed() -> Optional[int]:
            return seeder.randrange(2 ** 32) if cfg.prng_seed is not None else None

        try:
            self.bandits = MultiContextBanditEnsemble(
                contexts=cfg.contexts,
                n_arms=cfg.n_arms,
                active=cfg.active_bandit,
                default_context=cfg.default_context,
                ucb_c=cfg.ucb_c,
                epsilon=cfg.bandit_epsilon,
                exact_thompson=cfg.exact_thompson,
                prng_seed=child_seed(),
            )
            self.dqn = DQNAgent(
                self.input_size,
                cfg.n_arms,
                learning_rate=cfg.learning_rate,
                gamma=cfg.gamma,
                update_target_every=cfg.update_target_every,
                hidden_sizes=cfg.hidden_sizes,
                prng_seed=child_seed(),
            )
            self.replay_buffer = ExperienceReplayBuffer(
                cfg.replay_buffer_size, prng_seed=child_seed()
            )
        except EngineInitError:
            raise
        except Exception as e:
            raise EngineInitError(f"Decision engine could not be constructed: {e}") from e

        self._rng = random.Random(child_seed())
        self._reset_counters()

        logger.info(
            f"[DecisionEngine] Initialized: arms={cfg.n_arms} input={self.input_size} "
            f"bandit_ratio={cfg.bandit_ratio} active_bandit={self.bandits.active_type}"
        )

    def _reset_counters(self) -> None:
        self.epsilon = self.config.epsilon
        self.step_count = 0
        self.episode_count = 0
        self.total_reward = 0.0
        self._episode_reward = 0.0
        self.episode_rewards: Deque[float] = deque(maxlen=MAX_EPISODE_HISTORY)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def choose(self, state: Sequence[float], context: Optional[str] = None) -> ActionChoice:
        """
        Pick an action for a state under a context.

        Raises:
            ValueError: If the state length does not match input_size
        """
        if len(state) != self.input_size:
            raise ValueError(f"State length {len(state)} != expected {self.input_size}")

        with self._lock:
            ctx = self.bandits.resolve_context(context or self.config.default_context)
            if self._rng.random() < self.config.bandit_ratio:
                choice = ActionChoice(self.bandits.select_arm(ctx), SOURCE_BANDIT, ctx, self.epsilon)
            else:
                action = self.dqn.select_action(state, self.epsilon)
                choice = ActionChoice(action, SOURCE_VALUE_NETWORK, ctx, self.epsilon)

        logger.debug(f"[DecisionEngine] Selected action {choice.action} via {choice.source} ({ctx})")
        self._emit(ACTION_SELECTED, choice.to_dict())
        return choice

    def select_action(self, state: Sequence[float], context: Optional[str] = None) -> int:
        return self.choose(state, context).action

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def _valid_action(self, action: Any) -> bool:
        if isinstance(action, bool) or not isinstance(action, numbers.Integral):
            return False
        return 0 <= int(action) < self.config.n_arms

    def record_experience(
        self,
        state: Sequence[float],
        action: int,
        reward: float,
        next_state: Optional[Sequence[float]] = None,
        terminal: bool = False,
        context: Optional[str] = None,
    ) -> bool:
        """
        Store a transition, update bandits, train and decay epsilon.

        Invalid actions or non-finite rewards are ignored with a warning.

        Returns:
            True if the experience was recorded

        Raises:
            ValueError: If a state length does not match input_size
        """
        if not self._valid_action(action):
            logger.warning(f"[DecisionEngine] Ignoring experience with invalid action {action!r}")
            return False
        raw_reward = reward
        try:
            reward = float(reward)
        except (TypeError, ValueError):
            reward = float("nan")
        if not math.isfinite(reward):
            logger.warning(f"[DecisionEngine] Ignoring experience with invalid reward {raw_reward!r}")
            return False

        if next_state is None:
            next_state = state
        if len(state) != self.input_size or len(next_state) != self.input_size:
            raise ValueError(
                f"State length {len(state)}/{len(next_state)} != expected {self.input_size}"
            )

        experience = Experience(state, int(action), reward, next_state, terminal)
        loss = None

        with self._lock:
            ctx = self.bandits.resolve_context(context or self.config.default_context)
            self.replay_buffer.add(experience)
            self.bandits.update(ctx, experience.action, reward)

            self.total_reward += reward
            self._episode_reward += reward
            self.step_count += 1
            if experience.terminal:
                self.episode_count += 1
                self.episode_rewards.append(self._episode_reward)
                self._episode_reward = 0.0

            if (
                self.step_count % self.config.train_every == 0
                and len(self.replay_buffer) >= self.config.batch_size
            ):
                batch = self.replay_buffer.sample(self.config.batch_size)
                loss = self.dqn.train_on_batch(batch)
                logger.debug(
                    f"[DecisionEngine] Trained on {len(batch)} experiences, loss={loss:.5f}"
                )

            self.epsilon = max(self.config.epsilon_min, self.epsilon * self.config.epsilon_decay)

            save_every = self.config.save_every
            if self.persistence is not None and save_every and self.step_count % save_every == 0:
                self.save()

            payload = {
                "action": experience.action,
                "reward": reward,
                "context": ctx,
                "terminal": experience.terminal,
                "step": self.step_count,
                "epsilon": self.epsilon,
            }
            if loss is not None:
                payload["loss"] = loss

        self._emit(FEEDBACK_RECORDED, payload)
        return True

    def set_bandit_algorithm(self, name: str) -> bool:
        """Switch the authoritative bandit type (ucb, thompson, epsilon_greedy)."""
        with self._lock:
            return self.bandits.set_active(name)

    # ------------------------------------------------------------------
    # Stats / reset
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_reward": self.total_reward,
                "avg_reward": self.total_reward / self.step_count if self.step_count else 0.0,
                "step_count": self.step_count,
                "episode_count": self.episode_count,
                "episode_rewards": list(self.episode_rewards),
                "epsilon": self.epsilon,
                "bandit_ratio": self.config.bandit_ratio,
                "value_network": {
                    "training_steps": self.dqn.training_steps,
                    "last_loss": self.dqn.last_loss,
                    "buffer_size": len(self.replay_buffer),
                },
                "bandits": self.bandits.get_stats(),
            }

    def reset(self) -> None:
        """Clear replay buffer, counters and bandits. Network weights are kept."""
        with self._lock:
            self.replay_buffer.clear()
            self.bandits.reset()
            self._reset_counters()
        logger.info("[DecisionEngine] Reset complete")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> bool:
        """
        Persist weights and engine state.

        Failures are logged; in-memory state is never touched.

        Returns:
            True if both artifacts were written
        """
        if self.persistence is None:
            return False
        with self._lock:
            try:
                self.dqn.save(str(self.persistence.weights_path))
            except Exception as e:
                logger.warning(f"[DecisionEngine] Failed to save weights: {e}")
                return False
            return self.persistence.save_state(self._state_snapshot())

    def _state_snapshot(self) -> Dict[str, Any]:
        return {
            "config": self.config.to_dict(),
            "epsilon": self.epsilon,
            "step_count": self.step_count,
            "episode_count": self.episode_count,
            "stats": {
                "total_reward": self.total_reward,
                "episode_reward": self._episode_reward,
                "episode_rewards": list(self.episode_rewards),
            },
            "bandits": self.bandits.to_dict(),
        }

    def load(self) -> bool:
        """
        Restore weights and engine state.

        Missing or corrupt artifacts leave the engine in its fresh state.

        Returns:
            True if anything was restored
        """
        if self.persistence is None:
            return False
        with self._lock:
            weights_loaded = self.dqn.load(str(self.persistence.weights_path))
            state = self.persistence.load_state()
            if state is None:
                return weights_loaded
            try:
                self._restore_state(state)
            except Exception as e:
                logger.warning(f"[DecisionEngine] Could not restore engine state: {e}")
                self._reset_counters()
                self.bandits.reset()
                return weights_loaded
        logger.info(f"[DecisionEngine] State loaded (step={self.step_count})")
        return True

    def _restore_state(self, state: Dict[str, Any]) -> None:
        epsilon = float(state.get("epsilon", self.config.epsilon))
        self.epsilon = max(self.config.epsilon_min, min(1.0, epsilon))
        self.step_count = int(state.get("step_count", 0))
        self.episode_count = int(state.get("episode_count", 0))
        stats = state.get("stats") or {}
        self.total_reward = float(stats.get("total_reward", 0.0))
        self._episode_reward = float(stats.get("episode_reward", 0.0))
        self.episode_rewards = deque(
            (float(r) for r in stats.get("episode_rewards", [])), maxlen=MAX_EPISODE_HISTORY
        )
        bandits = state.get("bandits")
        if isinstance(bandits, dict):
            self.bandits.restore(bandits)

    # ------------------------------------------------------------------

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event_type, data)
