"""
Base Environment Interface
==========================

Abstract base class that defines the contract a policy-training harness
relies on. The agent and trainer only talk to the game through this surface.
"""

from abc import ABC, abstractmethod
from typing import Tuple
import numpy as np


class BaseGame(ABC):
    """
    Abstract base class for environments.

    Properties:
        state_size: int - Dimension of the observation vector
        action_size: int - Number of discrete actions

    Methods:
        reset() -> np.ndarray
            Start a fresh episode, return the first observation

        observe() -> np.ndarray
            Current observation derived from the live state

        step(action: int) -> Tuple[np.ndarray, float, bool]
            Apply an action, return (next_observation, reward, done)
    """

    @property
    @abstractmethod
    def state_size(self) -> int:
        """Return the dimension of the observation vector."""
        pass

    @property
    @abstractmethod
    def action_size(self) -> int:
        """Return the number of possible actions."""
        pass

    @abstractmethod
    def reset(self) -> np.ndarray:
        """
        Reset the game to a fresh episode.

        Returns:
            np.ndarray: Initial observation
        """
        pass

    @abstractmethod
    def observe(self) -> np.ndarray:
        """
        Get the current observation as a normalized vector.

        Returns:
            np.ndarray: Observation (values typically in [0, 1])
        """
        pass

    @abstractmethod
    def step(self, action: int) -> Tuple[np.ndarray, float, bool]:
        """
        Execute one game step with the given action.

        Args:
            action: Integer representing the action to take

        Returns:
            Tuple containing:
                - next_state (np.ndarray): Observation after the action
                - reward (float): Reward received
                - done (bool): True if the episode ended
        """
        pass

    def get_state(self) -> np.ndarray:
        """Alias of observe()."""
        return self.observe()

    def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass

    def seed(self, seed: int) -> None:
        """Set random seed for reproducibility. Override if game has randomness."""
        pass
