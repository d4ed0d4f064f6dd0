"""
DQN-style value-function learner.

A small fully connected ReLU network (torch) maps a state vector to one
value estimate per action. DQNAgent trains an online network on replay
batches against a target network that is refreshed by copying weights
every `update_target_every` training steps.
"""
from __future__ import annotations

import logging
import math
import os
import random
import threading
from typing import Dict, List, Optional, Sequence

try:
    import numpy as np
    import torch
    import torch.nn as nn
    from torch.optim import Adam
    TORCH_AVAILABLE = True
except ImportError:
    TORCH_AVAILABLE = False

from ..errors import EngineInitError
from .replay_buffer import Experience

logger = logging.getLogger(__name__)


class ValueNetwork:
    """
    Multi-layer perceptron with ReLU hidden layers and a linear head.

    Trained with Adam on mean squared error. Weights use He-normal
    initialization drawn from a seeded generator, biases start at zero.
    """

    ADAM_EPS = 1e-7

    def __init__(
        self,
        input_size: int,
        output_size: int,
        hidden_sizes: Sequence[int] = (64, 32),
        learning_rate: float = 0.001,
        seed: Optional[int] = None,
    ):
        if not TORCH_AVAILABLE:
            raise EngineInitError("torch is required for the value network: pip install torch")

        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.hidden_sizes = tuple(int(h) for h in hidden_sizes)
        self.learning_rate = float(learning_rate)

        generator = torch.Generator()
        if seed is not None:
            generator.manual_seed(seed)
        else:
            generator.seed()

        sizes = (self.input_size,) + self.hidden_sizes + (self.output_size,)
        layers: List[nn.Module] = []
        for i, (fan_in, fan_out) in enumerate(zip(sizes[:-1], sizes[1:])):
            linear = nn.Linear(fan_in, fan_out)
            std = math.sqrt(2.0 / fan_in)
            with torch.no_grad():
                linear.weight.copy_(torch.randn(fan_out, fan_in, generator=generator) * std)
                linear.bias.zero_()
            layers.append(linear)
            if i < len(sizes) - 2:
                layers.append(nn.ReLU())
        self.model = nn.Sequential(*layers)

        self.loss_fn = nn.MSELoss()
        self.optimizer: Optional[Adam] = None

    @staticmethod
    def _tensor(values) -> "torch.Tensor":
        return torch.as_tensor(np.asarray(values, dtype=np.float32))

    def predict(self, states) -> "np.ndarray":
        """Values for a (batch, input_size) array. Returns (batch, output_size)."""
        with torch.no_grad():
            return self.model(self._tensor(states)).numpy()

    def train_step(self, states, targets) -> float:
        """One Adam step on MSE over the whole batch. Returns the pre-step loss."""
        if self.optimizer is None:
            self.optimizer = Adam(self.model.parameters(), lr=self.learning_rate, eps=self.ADAM_EPS)

        self.optimizer.zero_grad()
        loss = self.loss_fn(self.model(self._tensor(states)), self._tensor(targets))
        loss.backward()
        self.optimizer.step()
        return float(loss.item())

    def get_weights(self) -> Dict[str, "torch.Tensor"]:
        """Detached copy of the model's state dict."""
        return {name: value.detach().clone() for name, value in self.model.state_dict().items()}

    def set_weights(self, weights: Dict[str, "torch.Tensor"]) -> None:
        """Replace parameters from a get_weights() dict (shapes must match)."""
        try:
            self.model.load_state_dict(weights)
        except RuntimeError as e:
            raise ValueError(f"Incompatible weights: {e}") from e

    def copy_from(self, other: "ValueNetwork") -> None:
        self.model.load_state_dict(other.model.state_dict())


class DQNAgent:
    """
    Online + target value networks with epsilon-greedy action selection.

    The target network is never trained directly; it receives a copy of
    the online weights every `update_target_every` training steps.
    """

    def __init__(
        self,
        input_size: int,
        output_size: int,
        learning_rate: float = 0.001,
        gamma: float = 0.95,
        update_target_every: int = 100,
        hidden_sizes: Sequence[int] = (64, 32),
        prng_seed: Optional[int] = None,
    ):
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.learning_rate = learning_rate
        self.gamma = gamma
        self.update_target_every = max(1, int(update_target_every))
        self.hidden_sizes = tuple(hidden_sizes)
        self.rng = random.Random(prng_seed)

        self.q_network = ValueNetwork(
            self.input_size, self.output_size, self.hidden_sizes, learning_rate, seed=prng_seed
        )
        self.target_network = ValueNetwork(
            self.input_size, self.output_size, self.hidden_sizes, learning_rate, seed=prng_seed
        )
        self.update_target_network()

        self.training_steps = 0
        self.last_loss: Optional[float] = None
        self._lock = threading.Lock()

        logger.debug(f"[DQN] Initialized with input={input_size} output={output_size}")

    def _as_state(self, state: Sequence[float]) -> "np.ndarray":
        x = np.asarray(state, dtype=np.float32).reshape(-1)
        if x.shape[0] != self.input_size:
            raise ValueError(f"State length {x.shape[0]} != expected {self.input_size}")
        return x

    def predict(self, state: Sequence[float]) -> List[float]:
        """Value estimate for every action in a single state."""
        x = self._as_state(state)
        with self._lock:
            return self.q_network.predict(x[None, :])[0].tolist()

    def select_action(self, state: Sequence[float], epsilon: float = 0.1) -> int:
        if self.rng.random() < epsilon:
            return self.rng.randrange(self.output_size)
        values = self.predict(state)
        return max(range(self.output_size), key=lambda a: (values[a], -a))

    def train_on_batch(self, batch: Sequence[Experience]) -> Optional[float]:
        """
        One gradient step on a replay batch.

        TD target is reward for terminal transitions and
        reward + gamma * max(target(next_state)) otherwise. Only the taken
        action's output is replaced with its target; other outputs keep the
        current prediction so they contribute no error.

        Returns:
            Batch loss before the step, or None for an empty batch
        """
        if not batch:
            return None

        states = np.stack([self._as_state(e.state) for e in batch])
        next_states = np.stack([self._as_state(e.next_state) for e in batch])
        actions = np.array([e.action for e in batch], dtype=np.int64)
        rewards = np.array([e.reward for e in batch], dtype=np.float32)
        terminal = np.array([e.terminal for e in batch], dtype=bool)

        with self._lock:
            targets = self.q_network.predict(states)
            max_next = self.target_network.predict(next_states).max(axis=1)
            td_targets = np.where(terminal, rewards, rewards + self.gamma * max_next)
            targets[np.arange(len(batch)), actions] = td_targets

            loss = self.q_network.train_step(states, targets)
            self.training_steps += 1
            self.last_loss = loss

            if self.training_steps % self.update_target_every == 0:
                self._sync_target()
                logger.info(f"[DQN] Target network updated at step {self.training_steps}")

        return loss

    def _sync_target(self) -> None:
        self.target_network.copy_from(self.q_network)

    def update_target_network(self) -> None:
        """Copy online weights into the target network."""
        self._sync_target()

    def save(self, path: str) -> None:
        """
        Write online weights to a torch checkpoint atomically.

        Raises:
            OSError: If the file cannot be written
        """
        with self._lock:
            checkpoint = {
                "state_dict": self.q_network.get_weights(),
                "training_steps": self.training_steps,
            }

        directory = os.path.dirname(path) or "."
        os.makedirs(directory, exist_ok=True)
        temp_path = f"{path}.tmp"
        torch.save(checkpoint, temp_path)
        os.replace(temp_path, path)
        logger.debug(f"[DQN] Model saved to {path}")

    def load(self, path: str) -> bool:
        """
        Restore online weights (and sync the target) from save().

        Returns:
            True on success; False if missing or incompatible (cold start)
        """
        if not os.path.exists(path):
            logger.debug(f"[DQN] No saved model at {path}")
            return False
        try:
            checkpoint = torch.load(path, map_location="cpu", weights_only=True)
            with self._lock:
                self.q_network.set_weights(checkpoint["state_dict"])
                self._sync_target()
                self.training_steps = int(checkpoint.get("training_steps", 0))
            logger.info(f"[DQN] Model loaded from {path}")
            return True
        except Exception as e:
            logger.warning(f"[DQN] Could not load model from {path}: {e}")
            return False
