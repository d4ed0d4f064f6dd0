"""Tests for the experience replay buffer."""
import pytest

from atlas_hybrid.learning.replay_buffer import Experience, ExperienceReplayBuffer


def _exp(i, terminal=False):
    return Experience((float(i), 0.0), i, float(i), (0.0, float(i)), terminal)


class TestExperience:
    """Tests for Experience records."""

    def test_coerces_types(self):
        """States become float tuples and scalars are normalized."""
        exp = Experience([1, 0], 3, 1, [0, 1], 0)
        assert exp.state == (1.0, 0.0)
        assert exp.next_state == (0.0, 1.0)
        assert isinstance(exp.reward, float)
        assert exp.terminal is False

    def test_frozen(self):
        """Experiences cannot be mutated."""
        exp = _exp(1)
        with pytest.raises(AttributeError):
            exp.reward = 5.0

    def test_from_dict_defaults_next_state(self):
        """A missing next_state reuses state."""
        exp = Experience.from_dict({"state": [1.0], "action": 0, "reward": 0.5})
        assert exp.next_state == exp.state
        assert Experience.from_dict(exp.to_dict()) == exp


class TestReplayBuffer:
    """Tests for ExperienceReplayBuffer."""

    def test_size_bounded_by_capacity(self):
        """Size never exceeds capacity."""
        buf = ExperienceReplayBuffer(capacity=5)
        for i in range(12):
            buf.add(_exp(i))
            assert len(buf) == min(i + 1, 5)
        assert buf.is_full

    def test_overwrites_oldest(self):
        """After wrap-around the buffer holds the most recent entries."""
        buf = ExperienceReplayBuffer(capacity=4)
        for i in range(10):
            buf.add(_exp(i))
        assert sorted(e.action for e in buf.items()) == [6, 7, 8, 9]

    def test_sample_without_replacement(self):
        """Samples contain distinct entries, capped at size."""
        buf = ExperienceReplayBuffer(capacity=10, prng_seed=1)
        for i in range(6):
            buf.add(_exp(i))
        batch = buf.sample(4)
        assert len(batch) == 4
        assert len({e.action for e in batch}) == 4
        assert len(buf.sample(50)) == 6

    def test_sample_empty(self):
        """Sampling an empty buffer returns nothing."""
        assert ExperienceReplayBuffer().sample(8) == []

    def test_seeded_sampling_is_deterministic(self):
        """The same seed draws the same batch."""
        a = ExperienceReplayBuffer(capacity=20, prng_seed=9)
        b = ExperienceReplayBuffer(capacity=20, prng_seed=9)
        for i in range(20):
            a.add(_exp(i))
            b.add(_exp(i))
        assert a.sample(5) == b.sample(5)

    def test_clear(self):
        """clear() empties the buffer and restarts the ring."""
        buf = ExperienceReplayBuffer(capacity=3)
        for i in range(5):
            buf.add(_exp(i))
        buf.clear()
        assert buf.size == 0
        buf.add(_exp(42))
        assert [e.action for e in buf.items()] == [42]
