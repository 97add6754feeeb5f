"""
DQN Agent
=========

The learner that plays the invader environment using Deep Q-Learning.

Key Components:
    1. Policy Network  - Used for action selection and learning
    2. Target Network  - Optional frozen copy for bootstrapped targets
    3. Replay Buffer   - Stores experiences for training
    4. Epsilon-Greedy  - Balances exploration vs exploitation

Training Algorithm (one update):
    1. Sample a mini-batch of (s, a, r, s', done) uniformly with replacement
    2. Predict Q(s, ·) and take it as the target vector
    3. Replace the taken action's entry with r (terminal) or r + γ * max Q(s', ·)
    4. Minimize the mean squared error between prediction and target
    5. Decay epsilon

References:
    Mnih et al., 2015 - "Human-level control through deep reinforcement learning"
"""

import copy
import os
import pickle
import random
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim

from config import Config
from .network import DQN
from .persistence import ModelLoadError, encode_network, network_from_blob
from .replay_buffer import ReplayBuffer
from ..utils.logger import get_logger, log_model_event

logger = get_logger(__name__)


@dataclass
class SaveMetadata:
    """Metadata stored with each checkpoint."""
    # Timing
    timestamp: str
    save_reason: str  # 'periodic', 'manual', 'final', 'interrupted'
    total_training_time_seconds: float

    # Training progress
    episode: int
    total_steps: int
    epsilon: float

    # Performance metrics
    best_score: int
    avg_score_last_100: float
    avg_loss: float
    memory_buffer_size: int

    # Config snapshot
    learning_rate: float
    gamma: float
    batch_size: int
    hidden_layers: List[int]
    epsilon_start: float
    epsilon_end: float
    epsilon_decay: float
    use_target_network: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaveMetadata':
        return cls(**data)


class Agent:
    """
    DQN Agent for reinforcement learning.

    By default bootstrapped targets come from the policy network itself.
    With USE_TARGET_NETWORK enabled they come from target_net, which is
    synced every TARGET_UPDATE updates.

    Attributes:
        policy_net: Network used for action selection and learning
        target_net: Frozen copy used for targets, or None
        memory: Experience replay buffer
        epsilon: Current exploration rate
        steps: Number of completed gradient updates

    Example:
        >>> agent = Agent(state_size=7, action_size=4)
        >>> action = agent.select_action(state)
        >>> agent.remember(state, action, reward, next_state, done)
        >>> loss = agent.train_step()
    """

    def __init__(
        self,
        state_size: int,
        action_size: int,
        config: Optional[Config] = None
    ):
        """
        Initialize the DQN agent.

        Args:
            state_size: Dimension of state vector
            action_size: Number of possible actions
            config: Configuration object
        """
        self.config = config or Config()
        self.state_size = state_size
        self.action_size = action_size
        self.device = self.config.DEVICE

        self.policy_net = DQN(state_size, action_size, self.config).to(self.device)
        self.target_net: Optional[DQN] = None
        if self.config.USE_TARGET_NETWORK:
            self.target_net = self._clone_frozen(self.policy_net)

        self.optimizer = optim.Adam(self.policy_net.parameters(), lr=self.config.LEARNING_RATE)
        self.loss_fn = nn.MSELoss()

        self.memory = ReplayBuffer(capacity=self.config.MEMORY_SIZE, state_size=state_size)

        self.epsilon = self.config.EPSILON_START
        self.gamma = self.config.GAMMA
        self.steps = 0

        # Bounded so long runs do not grow memory
        self.losses: deque = deque(maxlen=10000)
        self._losses_lock = threading.Lock()

        self._last_action_explored = False

    @staticmethod
    def _clone_frozen(network: DQN) -> DQN:
        clone = copy.deepcopy(network)
        clone.eval()
        for param in clone.parameters():
            param.requires_grad_(False)
        return clone

    def select_action(self, state: np.ndarray, training: bool = True) -> int:
        """
        Select an action using the epsilon-greedy policy.

        Args:
            state: Current observation
            training: If True, explore with probability epsilon; if False, greedy

        Returns:
            Selected action index. Ties go to the lowest index.
        """
        if training and random.random() < self.epsilon:
            self._last_action_explored = True
            return random.randrange(self.action_size)

        self._last_action_explored = False
        q_values = self.get_q_values(state)
        return int(np.argmax(q_values))

    def get_q_values(self, state: np.ndarray) -> np.ndarray:
        """
        Predicted Q-values for all actions.

        Args:
            state: Current observation

        Returns:
            Array of Q-values, one per action
        """
        with torch.inference_mode():
            tensor = torch.as_tensor(
                np.asarray(state, dtype=np.float32).reshape(1, -1), device=self.device
            )
            q_values = self.policy_net(tensor)
            return q_values.cpu().numpy()[0]

    def remember(
        self,
        state: np.ndarray,
        action: int,
        reward: float,
        next_state: np.ndarray,
        done: bool
    ) -> None:
        """Store an experience in the replay buffer."""
        self.memory.push(state, action, reward, next_state, done)

    def train_step(self, batch_size: Optional[int] = None) -> Optional[float]:
        """
        Perform one learning update from a uniformly sampled mini-batch.

        Args:
            batch_size: Mini-batch size (defaults to config.BATCH_SIZE)

        Returns:
            Loss value if an update happened, None if the buffer is too small
        """
        batch_size = batch_size or self.config.BATCH_SIZE
        if not self.memory.is_ready(batch_size):
            return None

        states_np, actions_np, rewards_np, next_states_np, dones_np = self.memory.sample(batch_size)

        states = torch.from_numpy(states_np).to(self.device)
        actions = torch.from_numpy(actions_np).to(self.device)
        rewards = torch.from_numpy(rewards_np).to(self.device)
        next_states = torch.from_numpy(next_states_np).to(self.device)
        dones = torch.from_numpy(dones_np).to(self.device)

        predicted = self.policy_net(states)

        with torch.no_grad():
            bootstrap_net = self.target_net if self.target_net is not None else self.policy_net
            next_q = bootstrap_net(next_states).max(dim=1).values
            backups = rewards + (1.0 - dones) * self.gamma * next_q

            targets = predicted.detach().clone()
            targets[torch.arange(batch_size, device=self.device), actions] = backups

        loss = self.loss_fn(predicted, targets)

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        self.steps += 1
        if self.target_net is not None and self.steps % self.config.TARGET_UPDATE == 0:
            self.update_target_network()

        self.decay_epsilon()

        loss_value = loss.item()
        with self._losses_lock:
            self.losses.append(loss_value)

        return loss_value

    def update_target_network(self) -> None:
        """Hard update: copy policy weights into the target network."""
        if self.target_net is not None:
            self.target_net.load_state_dict(self.policy_net.state_dict())
            logger.debug("Target network synced at update %d", self.steps)

    def decay_epsilon(self) -> None:
        """Multiply epsilon by the decay factor, never going below the floor."""
        self.epsilon = max(
            self.config.EPSILON_END,
            self.epsilon * self.config.EPSILON_DECAY
        )

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def export_blob(self) -> Dict[str, Any]:
        """Serialize the policy network into a JSON-safe blob."""
        return encode_network(self.policy_net)

    def import_blob(self, blob: Dict[str, Any]) -> None:
        """
        Replace the policy network with one decoded from a blob.

        The blob is fully decoded into a fresh network first, so on any
        failure the agent is left exactly as it was.

        Raises:
            ModelLoadError: If the blob is malformed or does not fit this agent
        """
        network = network_from_blob(blob, self.config)
        if network.state_size != self.state_size or network.action_size != self.action_size:
            raise ModelLoadError(
                f"Model expects {network.state_size} inputs / {network.action_size} actions, "
                f"agent has {self.state_size} / {self.action_size}"
            )

        self.policy_net = network.to(self.device)
        if self.target_net is not None:
            self.target_net = self._clone_frozen(self.policy_net)
        self.optimizer = optim.Adam(self.policy_net.parameters(), lr=self.config.LEARNING_RATE)
        log_model_event('import', '<blob>', hidden_layers=network.hidden_sizes)

    def save(
        self,
        filepath: str,
        save_reason: str = "manual",
        episode: int = 0,
        best_score: int = 0,
        avg_score_last_100: float = 0.0,
        training_start_time: Optional[float] = None
    ) -> SaveMetadata:
        """
        Save a resumable checkpoint.

        Args:
            filepath: Path to save file
            save_reason: Why this save is happening ('periodic', 'manual', 'final', 'interrupted')
            episode: Current episode number
            best_score: Best score achieved so far
            avg_score_last_100: Average score over last 100 episodes
            training_start_time: Unix timestamp when training started

        Returns:
            The metadata written alongside the weights
        """
        dir_path = os.path.dirname(filepath)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)

        total_time = 0.0
        if training_start_time:
            total_time = time.time() - training_start_time

        metadata = SaveMetadata(
            timestamp=datetime.now().isoformat(),
            save_reason=save_reason,
            total_training_time_seconds=total_time,
            episode=episode,
            total_steps=self.steps,
            epsilon=self.epsilon,
            best_score=best_score,
            avg_score_last_100=avg_score_last_100,
            avg_loss=self.get_average_loss(100),
            memory_buffer_size=len(self.memory),
            learning_rate=self.config.LEARNING_RATE,
            gamma=self.gamma,
            batch_size=self.config.BATCH_SIZE,
            hidden_layers=list(self.policy_net.hidden_sizes),
            epsilon_start=self.config.EPSILON_START,
            epsilon_end=self.config.EPSILON_END,
            epsilon_decay=self.config.EPSILON_DECAY,
            use_target_network=self.target_net is not None,
        )

        checkpoint = {
            'topology': self.policy_net.get_topology(),
            'policy_net_state_dict': self.policy_net.state_dict(),
            'target_net_state_dict': self.target_net.state_dict() if self.target_net is not None else None,
            'optimizer_state_dict': self.optimizer.state_dict(),
            'epsilon': self.epsilon,
            'steps': self.steps,
            'state_size': self.state_size,
            'action_size': self.action_size,
            'metadata': metadata.to_dict(),
        }

        torch.save(checkpoint, filepath)
        log_model_event('save', filepath, reason=save_reason, episode=episode,
                        steps=self.steps, epsilon=round(self.epsilon, 4))
        return metadata

    def load(self, filepath: str) -> Optional[SaveMetadata]:
        """
        Restore a checkpoint written by save().

        Returns:
            The checkpoint's metadata, or None for checkpoints without it

        Raises:
            FileNotFoundError: If filepath does not exist
            ModelLoadError: If the checkpoint is corrupt or does not fit this agent
        """
        try:
            checkpoint = torch.load(filepath, map_location=self.device, weights_only=False)
        except FileNotFoundError:
            raise
        except (pickle.UnpicklingError, RuntimeError, EOFError, ValueError) as e:
            raise ModelLoadError(f"Checkpoint {filepath} is not readable: {e}") from e
        if not isinstance(checkpoint, dict):
            raise ModelLoadError(f"Checkpoint {filepath} does not contain a checkpoint dict")

        saved_state_size = checkpoint.get('state_size', self.state_size)
        saved_action_size = checkpoint.get('action_size', self.action_size)
        if saved_state_size != self.state_size or saved_action_size != self.action_size:
            raise ModelLoadError(
                f"Checkpoint {filepath} has {saved_state_size} inputs / {saved_action_size} actions, "
                f"agent has {self.state_size} / {self.action_size}"
            )

        topology = checkpoint.get('topology') or self.policy_net.get_topology()
        network = DQN.from_topology(topology, self.config).to(self.device)
        try:
            network.load_state_dict(checkpoint['policy_net_state_dict'])
        except (KeyError, RuntimeError) as e:
            raise ModelLoadError(f"Checkpoint {filepath} weights do not match: {e}") from e

        self.policy_net = network
        if self.target_net is not None:
            self.target_net = self._clone_frozen(self.policy_net)
            if checkpoint.get('target_net_state_dict') is not None:
                self.target_net.load_state_dict(checkpoint['target_net_state_dict'])

        self.optimizer = optim.Adam(self.policy_net.parameters(), lr=self.config.LEARNING_RATE)
        if 'optimizer_state_dict' in checkpoint:
            self.optimizer.load_state_dict(checkpoint['optimizer_state_dict'])

        self.epsilon = checkpoint.get('epsilon', self.epsilon)
        self.steps = checkpoint.get('steps', 0)

        metadata = None
        if 'metadata' in checkpoint:
            metadata = SaveMetadata.from_dict(checkpoint['metadata'])

        log_model_event('load', filepath, steps=self.steps, epsilon=round(self.epsilon, 4))
        return metadata

    def get_average_loss(self, n: int = 100) -> float:
        """Average of the last n losses (thread-safe)."""
        with self._losses_lock:
            if not self.losses:
                return 0.0
            recent = list(self.losses)[-n:]
        return sum(recent) / len(recent)
