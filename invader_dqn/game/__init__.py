"""
Game Module
===========

The invader simulation and its reinforcement learning wrapper.

Classes:
    SimulationEngine - Deterministic per-step world update
    InvaderEnv       - reset / observe / step environment over the engine
    BaseGame         - Abstract environment contract
"""

from .base_game import BaseGame
from .entities import (
    Boss, Bullet, EntityKind, EntityView, InputIntent, Invader, Player, overlaps,
)
from .engine import RenderSnapshot, SimulationEngine, SimulationState
from .environment import ACTION_INTENTS, OBSERVATION_SIZE, Action, InvaderEnv

__all__ = [
    'BaseGame',
    'Boss', 'Bullet', 'EntityKind', 'EntityView', 'InputIntent', 'Invader', 'Player', 'overlaps',
    'RenderSnapshot', 'SimulationEngine', 'SimulationState',
    'ACTION_INTENTS', 'OBSERVATION_SIZE', 'Action', 'InvaderEnv',
]
