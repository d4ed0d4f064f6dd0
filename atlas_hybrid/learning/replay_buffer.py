"""
Experience replay buffer.

Fixed-capacity ring buffer of transitions with uniform sampling
without replacement.
"""
from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Experience:
    """
    One transition (state, action, reward, next_state, terminal).

    State vectors are stored as tuples so an experience cannot be
    mutated after insertion.
    """
    state: Tuple[float, ...]
    action: int
    reward: float
    next_state: Tuple[float, ...]
    terminal: bool = False

    def __post_init__(self):
        object.__setattr__(self, "state", tuple(float(x) for x in self.state))
        object.__setattr__(self, "next_state", tuple(float(x) for x in self.next_state))
        object.__setattr__(self, "action", int(self.action))
        object.__setattr__(self, "reward", float(self.reward))
        object.__setattr__(self, "terminal", bool(self.terminal))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": list(self.state),
            "action": self.action,
            "reward": self.reward,
            "next_state": list(self.next_state),
            "terminal": self.terminal,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Experience":
        return cls(
            state=data["state"],
            action=data["action"],
            reward=data["reward"],
            next_state=data.get("next_state", data["state"]),
            terminal=data.get("terminal", False),
        )


class ExperienceReplayBuffer:
    """
    Ring buffer of Experience records.

    Once full, each add() overwrites the oldest entry.

    Example:
        >>> buf = ExperienceReplayBuffer(capacity=2)
        >>> for i in range(3):
        ...     buf.add(Experience((0.0,), i, 1.0, (0.0,)))
        >>> sorted(e.action for e in buf.sample(10))
        [1, 2]
    """

    def __init__(self, capacity: int = 1000, prng_seed: Optional[int] = None):
        self.capacity = max(1, int(capacity))
        self.rng = random.Random(prng_seed)
        self._buffer: List[Experience] = []
        self._position = 0
        self._lock = threading.Lock()

    def add(self, experience: Experience) -> None:
        with self._lock:
            if len(self._buffer) < self.capacity:
                self._buffer.append(experience)
            else:
                self._buffer[self._position] = experience
            self._position = (self._position + 1) % self.capacity

    def sample(self, batch_size: int) -> List[Experience]:
        """Draw min(batch_size, size) distinct experiences uniformly."""
        with self._lock:
            k = max(0, min(int(batch_size), len(self._buffer)))
            indices = self.rng.sample(range(len(self._buffer)), k)
            return [self._buffer[i] for i in indices]

    def items(self) -> Sequence[Experience]:
        """Snapshot of stored experiences (storage order, not insertion order)."""
        with self._lock:
            return tuple(self._buffer)

    @property
    def size(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def is_full(self) -> bool:
        return len(self._buffer) >= self.capacity

    def clear(self) -> None:
        with self._lock:
            self._buffer = []
            self._position = 0
