"""
Invader DQN - Source Package
============================

A fixed-timestep invader shooter exposed as a reinforcement learning
environment, plus the Deep Q-Learning agent that learns to play it.

Modules:
    game/       - Entity model, simulation engine and environment interface
    ai/         - Q-network, replay buffer, agent, persistence and trainer
    visualizer/ - pygame renderer for simulation snapshots
    utils/      - Logging helpers
"""

__version__ = "1.0.0"
