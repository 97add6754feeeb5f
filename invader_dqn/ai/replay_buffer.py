"""
Experience Replay Buffer
========================

A fixed-capacity memory of transitions for training the DQN.

How it works:
    1. Agent plays, pushing (state, action, reward, next_state, done) records
    2. Training draws uniform random batches, with replacement
    3. When the buffer is full the oldest record is evicted first (FIFO)

Sampling more records than the buffer holds is a caller error and raises.
"""

import numpy as np
from typing import Iterator, NamedTuple, Tuple


class Transition(NamedTuple):
    """One stored experience. Immutable once recorded."""
    state: np.ndarray
    action: int
    reward: float
    next_state: np.ndarray
    done: bool


class ReplayBuffer:
    """
    Fixed-size buffer of transitions with contiguous numpy storage.

    Storage is circular: `_position` is the next write slot, and once the
    buffer is full it is also the slot of the oldest record.

    Example:
        >>> buffer = ReplayBuffer(capacity=2000, state_size=7)
        >>> buffer.push(state, action, reward, next_state, done)
        >>> states, actions, rewards, next_states, dones = buffer.sample(32)
    """

    def __init__(self, capacity: int, state_size: int):
        """
        Initialize the replay buffer.

        Args:
            capacity: Maximum number of experiences to store
            state_size: Size of the observation vector
        """
        if capacity <= 0:
            raise ValueError("Replay buffer capacity must be positive")

        self.capacity = capacity
        self.state_size = state_size
        self._size = 0
        self._position = 0

        self.states = np.zeros((capacity, state_size), dtype=np.float32)
        self.actions = np.zeros(capacity, dtype=np.int64)
        self.rewards = np.zeros(capacity, dtype=np.float32)
        self.next_states = np.zeros((capacity, state_size), dtype=np.float32)
        self.dones = np.zeros(capacity, dtype=np.float32)

    def push(
        self,
        state: np.ndarray,
        action: int,
        reward: float,
        next_state: np.ndarray,
        done: bool
    ) -> None:
        """
        Add an experience, overwriting the oldest one when full.

        Args:
            state: Current state
            action: Action taken
            reward: Reward received
            next_state: Next state
            done: Whether episode ended
        """
        # Explicit copies so later mutation of the caller's arrays is harmless
        np.copyto(self.states[self._position], state)
        self.actions[self._position] = action
        self.rewards[self._position] = reward
        np.copyto(self.next_states[self._position], next_state)
        self.dones[self._position] = float(done)

        self._position = (self._position + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)

    def record(self, transition: Transition) -> None:
        """Push a Transition record."""
        self.push(*transition)

    def sample(self, batch_size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Draw `batch_size` experiences uniformly, with replacement.

        Returns:
            Tuple of numpy arrays: (states, actions, rewards, next_states, dones)
            All arrays are copies.

        Raises:
            RuntimeError: If the buffer holds fewer than batch_size experiences
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if not self.is_ready(batch_size):
            raise RuntimeError(
                f"Cannot sample {batch_size} transitions from a buffer holding {self._size}"
            )

        indices = np.random.choice(self._size, size=batch_size, replace=True)

        return (
            self.states[indices].copy(),
            self.actions[indices].copy(),
            self.rewards[indices].copy(),
            self.next_states[indices].copy(),
            self.dones[indices].copy()
        )

    def __len__(self) -> int:
        """Return current buffer size."""
        return self._size

    def __iter__(self) -> Iterator[Transition]:
        """Iterate stored transitions from oldest to newest."""
        start = self._position if self._size == self.capacity else 0
        for offset in range(self._size):
            i = (start + offset) % self.capacity
            yield Transition(
                self.states[i].copy(),
                int(self.actions[i]),
                float(self.rewards[i]),
                self.next_states[i].copy(),
                bool(self.dones[i]),
            )

    def is_ready(self, batch_size: int) -> bool:
        """Check if buffer has enough experiences for sampling."""
        return self._size >= batch_size

    def clear(self) -> None:
        """Clear all experiences from the buffer."""
        self._size = 0
        self._position = 0
