"""
AI Module
=========

Deep Reinforcement Learning components for the invader environment.

Classes:
    DQN          - Deep Q-Network neural network architecture
    Agent        - DQN agent with epsilon-greedy exploration
    ReplayBuffer - Experience replay memory
    ModelStore   - Directory of named, serialized networks
    Trainer      - Interactive / training orchestration
"""

from .network import DQN
from .replay_buffer import ReplayBuffer, Transition
from .persistence import ModelLoadError, ModelNotFoundError, ModelStore
from .agent import Agent, SaveMetadata
from .trainer import EpisodeStats, RunMode, Trainer, TrainingMetrics

__all__ = [
    'DQN', 'ReplayBuffer', 'Transition',
    'ModelLoadError', 'ModelNotFoundError', 'ModelStore',
    'Agent', 'SaveMetadata',
    'EpisodeStats', 'RunMode', 'Trainer', 'TrainingMetrics',
]
