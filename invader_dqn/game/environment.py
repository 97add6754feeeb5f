"""
Invader Environment
===================

Wraps the SimulationEngine behind the reset / observe / step contract.

Observation (7 floats, normalized by screen size):
    [0] player x
    [1] nearest invader x      (0.5 when there are no invaders)
    [2] nearest invader y      (0.0 when there are no invaders)
    [3] nearest enemy bullet x (0.5 when there are none)
    [4] nearest enemy bullet y (0.0 when there are none)
    [5] boss x                 (0.5 when no boss)
    [6] boss present flag      (1.0 / 0.0)

"Nearest" is Manhattan distance between origins, first minimum wins.

Reward per step:
    +0.1 survival shaping
    +10  if the score increased (invader kills and the boss bonus alike)
    -50  if the step ended the episode
"""

from enum import IntEnum
from typing import Dict, Iterable, Optional, Tuple, Any

import numpy as np

from config import Config
from .base_game import BaseGame
from .engine import RenderSnapshot, SimulationEngine, SimulationState
from .entities import Bullet, InputIntent, Invader, Player


OBSERVATION_SIZE = 7


class Action(IntEnum):
    """Discrete agent actions."""
    STAY = 0
    LEFT = 1
    RIGHT = 2
    SHOOT = 3


ACTION_INTENTS: Dict[Action, InputIntent] = {
    Action.STAY: InputIntent(),
    Action.LEFT: InputIntent(move_left=True),
    Action.RIGHT: InputIntent(move_right=True),
    Action.SHOOT: InputIntent(fire=True),
}


def _nearest(player: Player, candidates: Iterable[Any]) -> Optional[Any]:
    best = None
    best_dist = float('inf')
    for entity in candidates:
        dist = abs(entity.x - player.x) + abs(entity.y - player.y)
        if dist < best_dist:
            best_dist = dist
            best = entity
    return best


class InvaderEnv(BaseGame):
    """
    Invader shooter as a Markov Decision Process.

    Example:
        >>> env = InvaderEnv(Config(), seed=42)
        >>> obs = env.reset()
        >>> obs, reward, done = env.step(Action.SHOOT)
    """

    def __init__(self, config: Optional[Config] = None, seed: Optional[int] = None):
        self.config = config or Config()
        self.engine = SimulationEngine(self.config, seed=seed)

    @property
    def state_size(self) -> int:
        return OBSERVATION_SIZE

    @property
    def action_size(self) -> int:
        return len(Action)

    @property
    def state(self) -> SimulationState:
        """The engine's live state (read-only by convention)."""
        return self.engine.state

    @property
    def is_started(self) -> bool:
        return self.engine.is_started

    @property
    def is_terminal(self) -> bool:
        return self.engine.state.is_game_over

    def seed(self, seed: int) -> None:
        self.engine.seed(seed)

    def reset(self) -> np.ndarray:
        self.engine.reset()
        return self.observe()

    def observe(self) -> np.ndarray:
        state = self.engine.state
        player = state.player
        if player is None:
            raise RuntimeError("observe() called before reset()")

        width = float(self.config.SCREEN_WIDTH)
        height = float(self.config.SCREEN_HEIGHT)

        invader: Optional[Invader] = _nearest(player, state.invaders)
        bullet: Optional[Bullet] = _nearest(
            player, (b for b in state.bullets if b.owner_is_enemy)
        )
        boss = state.boss

        return np.array([
            player.x / width,
            invader.x / width if invader is not None else 0.5,
            invader.y / height if invader is not None else 0.0,
            bullet.x / width if bullet is not None else 0.5,
            bullet.y / height if bullet is not None else 0.0,
            boss.x / width if boss is not None else 0.5,
            1.0 if boss is not None else 0.0,
        ], dtype=np.float32)

    def step(self, action: int) -> Tuple[np.ndarray, float, bool]:
        """
        Apply one action and advance the simulation by a single step.

        Raises:
            RuntimeError: If called before reset() or after the episode ended
            ValueError: If action is not one of the four discrete actions
        """
        if not self.engine.is_started:
            raise RuntimeError("step() called before reset()")
        if self.engine.state.is_game_over:
            raise RuntimeError("Episode is over; call reset() before stepping again")
        try:
            action = Action(int(action))
        except ValueError:
            raise ValueError(f"Invalid action {action!r}; expected 0..{len(Action) - 1}") from None

        previous_score = self.engine.state.score
        self.engine.advance(ACTION_INTENTS[action])
        state = self.engine.state

        reward = self.config.REWARD_STEP
        if state.score > previous_score:
            reward += self.config.REWARD_SCORE
        if state.is_game_over:
            reward += self.config.REWARD_GAME_OVER

        return self.observe(), float(reward), state.is_game_over

    def snapshot(self) -> RenderSnapshot:
        return self.engine.snapshot()

    def get_info(self) -> Dict[str, Any]:
        """Episode bookkeeping for logs and the HUD."""
        state = self.engine.state
        return {
            'score': state.score,
            'wave': state.wave,
            'steps': state.steps,
            'invaders_remaining': len(state.invaders),
            'boss_health': state.boss.health if state.boss is not None else None,
            'player_alive': state.player is not None and state.player.alive,
        }
