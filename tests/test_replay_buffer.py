"""
Tests for the Replay Buffer.

These tests verify:
    - Buffer initialization
    - Experience storage (push)
    - Sampling behavior
    - Circular buffer overflow
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from invader_dqn.ai.replay_buffer import ReplayBuffer, Transition


@pytest.fixture
def state_size():
    """State size for testing."""
    return 7


@pytest.fixture
def buffer(state_size):
    """Create a replay buffer instance."""
    return ReplayBuffer(capacity=100, state_size=state_size)


@pytest.fixture
def sample_experience(state_size):
    """Create a sample experience tuple."""
    def _make_experience(reward=1.0, done=False):
        state = np.random.rand(state_size).astype(np.float32)
        action = np.random.randint(0, 4)
        next_state = np.random.rand(state_size).astype(np.float32)
        return state, action, reward, next_state, done
    return _make_experience


class TestReplayBufferInitialization:
    """Test buffer initialization."""

    def test_buffer_starts_empty(self, buffer):
        """Buffer should start empty."""
        assert len(buffer) == 0
        assert list(buffer) == []

    def test_capacity_set_correctly(self, buffer):
        assert buffer.capacity == 100

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            ReplayBuffer(capacity=0, state_size=7)


class TestReplayBufferPush:
    """Test storing experiences."""

    def test_push_increases_size(self, buffer, sample_experience):
        buffer.push(*sample_experience())
        assert len(buffer) == 1

    def test_push_copies_state(self, buffer, sample_experience):
        """Mutating the caller's array does not change the stored record."""
        state, action, reward, next_state, done = sample_experience()
        original = state.copy()
        buffer.push(state, action, reward, next_state, done)
        state[:] = -1.0
        stored = next(iter(buffer))
        np.testing.assert_array_equal(stored.state, original)

    def test_record_transition(self, buffer, state_size):
        transition = Transition(np.zeros(state_size), 2, 0.5, np.ones(state_size), True)
        buffer.record(transition)
        stored = next(iter(buffer))
        assert stored.action == 2
        assert stored.reward == pytest.approx(0.5)
        assert stored.done is True


class TestReplayBufferOverflow:
    """Test FIFO eviction."""

    def test_size_capped_at_capacity(self, state_size):
        buffer = ReplayBuffer(capacity=2000, state_size=state_size)
        for i in range(2001):
            buffer.push(np.full(state_size, i, dtype=np.float32), 0, float(i), np.zeros(state_size), False)
        assert len(buffer) == 2000

    def test_oldest_evicted_first(self, state_size):
        """After overflow the first record is gone and order is preserved."""
        buffer = ReplayBuffer(capacity=2000, state_size=state_size)
        for i in range(2001):
            buffer.push(np.zeros(state_size), 0, float(i), np.zeros(state_size), False)

        rewards = [t.reward for t in buffer]
        assert rewards[0] == 1.0
        assert rewards[-1] == 2000.0
        assert 0.0 not in rewards
        assert rewards == sorted(rewards)

    def test_clear(self, buffer, sample_experience):
        for _ in range(10):
            buffer.push(*sample_experience())
        buffer.clear()
        assert len(buffer) == 0


class TestReplayBufferSampling:
    """Test sampling."""

    def test_sample_shapes(self, buffer, sample_experience, state_size):
        for _ in range(50):
            buffer.push(*sample_experience())
        states, actions, rewards, next_states, dones = buffer.sample(32)
        assert states.shape == (32, state_size)
        assert actions.shape == (32,)
        assert rewards.shape == (32,)
        assert next_states.shape == (32, state_size)
        assert dones.shape == (32,)

    def test_sample_with_replacement(self, buffer, sample_experience):
        """A batch as large as the buffer is allowed."""
        for _ in range(5):
            buffer.push(*sample_experience())
        states, *_ = buffer.sample(5)
        assert states.shape[0] == 5

    def test_sample_too_many_raises(self, buffer, sample_experience):
        for _ in range(5):
            buffer.push(*sample_experience())
        with pytest.raises(RuntimeError):
            buffer.sample(32)

    def test_sample_returns_copies(self, buffer, sample_experience):
        for _ in range(5):
            buffer.push(*sample_experience())
        states, *_ = buffer.sample(5)
        states[:] = 42.0
        assert not np.any(buffer.states[:5] == 42.0)

    def test_is_ready(self, buffer, sample_experience):
        for _ in range(31):
            buffer.push(*sample_experience())
        assert not buffer.is_ready(32)
        buffer.push(*sample_experience())
        assert buffer.is_ready(32)

    def test_done_flags_preserved(self, buffer, state_size):
        for _ in range(10):
            buffer.push(np.zeros(state_size), 1, -50.0, np.zeros(state_size), True)
        _, actions, rewards, _, dones = buffer.sample(10)
        assert np.all(dones == 1.0)
        assert np.all(actions == 1)
        assert np.all(rewards == -50.0)
