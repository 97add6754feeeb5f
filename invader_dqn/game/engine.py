"""
Simulation Engine
=================

Owns the authoritative world state and advances it one fixed step at a time.

Per-step order:
    1. Player movement, cooldown and firing
    2. Boss motion and spread fire (or boss spawn once the grid is empty)
    3. Random invader fire
    4. Bullet motion and off-screen removal
    5. Invader motion with wave-wide edge reversal and descent
    6. Collision resolution, in a fixed order, stopping at the first terminal event
    7. Wave settlement: a defeated boss is replaced by a fresh grid, an empty
       field gets a boss

Entities hit during a scan are only flagged; the surviving lists are rebuilt
once the scan is over.
"""

import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from config import Config
from .entities import (
    Boss, Bullet, EntityView, InputIntent, Invader, Player,
    make_bullet, overlaps, spawn_boss, spawn_invader_grid, spawn_player,
    update_entity, view_entity,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SimulationState:
    """The mutable world. Only SimulationEngine writes to it."""
    score: int = 0
    is_playing: bool = False
    is_game_over: bool = False
    player: Optional[Player] = None
    invaders: List[Invader] = field(default_factory=list)
    boss: Optional[Boss] = None
    bullets: List[Bullet] = field(default_factory=list)
    wave: int = 0
    steps: int = 0


@dataclass(frozen=True)
class RenderSnapshot:
    """Immutable picture of one simulation step, handed to the renderer."""
    width: int
    height: int
    score: int
    is_playing: bool
    is_game_over: bool
    wave: int
    entities: Tuple[EntityView, ...]


class SimulationEngine:
    """
    Deterministic invader simulation.

    Randomness (enemy fire) comes from an engine-owned generator, so two
    engines seeded alike produce identical episodes for identical inputs.

    Example:
        >>> engine = SimulationEngine(Config(), seed=0)
        >>> engine.reset()
        >>> engine.advance(InputIntent(fire=True))
        >>> engine.state.bullets[0].owner_is_enemy
        False
    """

    def __init__(self, config: Optional[Config] = None, seed: Optional[int] = None):
        self.config = config or Config()
        self.rng = random.Random(seed)
        self.state = SimulationState()

        # Collision rules, evaluated in this order every step
        self._collision_rules: Tuple[Callable[[], None], ...] = (
            self._player_bullets_vs_invaders,
            self._player_bullets_vs_boss,
            self._enemy_bullets_vs_player,
            self._invaders_vs_player,
            self._invaders_reach_bottom,
            self._boss_vs_player,
        )

    def seed(self, seed: Optional[int]) -> None:
        self.rng.seed(seed)

    @property
    def is_started(self) -> bool:
        """True once reset() has built an episode."""
        return self.state.player is not None

    def reset(self) -> SimulationState:
        """Start a fresh episode: zero score, centered player, first wave."""
        self.state = SimulationState(
            score=0,
            is_playing=True,
            is_game_over=False,
            player=spawn_player(self.config),
            invaders=spawn_invader_grid(self.config),
            boss=None,
            bullets=[],
            wave=1,
            steps=0,
        )
        logger.debug("Episode reset: %d invaders", len(self.state.invaders))
        return self.state

    def advance(self, intent: InputIntent) -> None:
        """Advance the world by exactly one step. No-op once the episode is over."""
        state = self.state
        if not state.is_playing:
            return
        if state.player is None:
            raise RuntimeError("Simulation has no player; reset() must run before advance()")

        state.steps += 1

        self._update_player(intent)
        self._update_boss_phase()
        self._invader_fire()
        self._update_bullets()
        self._update_invaders()

        for rule in self._collision_rules:
            rule()
            if state.is_game_over:
                break
        self._compact()

        if state.is_playing:
            self._settle_wave()

    def snapshot(self) -> RenderSnapshot:
        """Read-only view of the current state for drawing."""
        state = self.state
        views = []
        if state.player is not None and state.player.alive:
            views.append(view_entity(state.player, self.config))
        if state.boss is not None:
            views.append(view_entity(state.boss, self.config))
        views.extend(view_entity(invader, self.config) for invader in state.invaders)
        views.extend(view_entity(bullet, self.config) for bullet in state.bullets)

        return RenderSnapshot(
            width=self.config.SCREEN_WIDTH,
            height=self.config.SCREEN_HEIGHT,
            score=state.score,
            is_playing=state.is_playing,
            is_game_over=state.is_game_over,
            wave=state.wave,
            entities=tuple(views),
        )

    # =========================================================================
    # UPDATE PHASES
    # =========================================================================

    def _update_player(self, intent: InputIntent) -> None:
        player = self.state.player
        assert player is not None
        if not player.alive:
            return

        update_entity(player, self.config, intent)

        if intent.fire and player.shoot_cooldown == 0:
            self.state.bullets.append(make_bullet(
                self.config,
                player.x + player.width / 2 - self.config.BULLET_WIDTH / 2,
                player.y,
                self.config.PLAYER_BULLET_SPEED,
                owner_is_enemy=False,
            ))
            player.shoot_cooldown = self.config.PLAYER_SHOOT_INTERVAL

    def _update_boss_phase(self) -> None:
        state = self.state
        if state.boss is not None:
            if not state.boss.defeated:
                update_entity(state.boss, self.config)
                self._boss_fire(state.boss)
            if state.boss.defeated:
                self._defeat_boss()
        elif not state.invaders:
            self._spawn_boss()

    def _boss_fire(self, boss: Boss) -> None:
        if self.rng.random() >= self.config.BOSS_FIRE_CHANCE:
            return
        center_x = boss.x + boss.width / 2
        bottom = boss.y + boss.height
        spread = self.config.BOSS_SPREAD
        for dx, dy in ((0, 0), (-spread, -5), (spread, -5)):
            self.state.bullets.append(make_bullet(
                self.config, center_x + dx, bottom + dy,
                self.config.ENEMY_BULLET_SPEED, owner_is_enemy=True,
            ))

    def _invader_fire(self) -> None:
        invaders = self.state.invaders
        if not invaders or self.rng.random() >= self.config.INVADER_FIRE_CHANCE:
            return
        shooter = invaders[self.rng.randrange(len(invaders))]
        self.state.bullets.append(make_bullet(
            self.config,
            shooter.x + shooter.width / 2,
            shooter.y + shooter.height,
            self.config.ENEMY_BULLET_SPEED,
            owner_is_enemy=True,
        ))

    def _update_bullets(self) -> None:
        for bullet in self.state.bullets:
            update_entity(bullet, self.config)
        self.state.bullets = [b for b in self.state.bullets if not b.pending_removal]

    def _update_invaders(self) -> None:
        invaders = self.state.invaders
        width = self.config.SCREEN_WIDTH

        for invader in invaders:
            update_entity(invader, self.config)

        # Formation turns around as a whole
        if any(inv.x + inv.width >= width or inv.x <= 0 for inv in invaders):
            for invader in invaders:
                invader.vx *= -1
                invader.y += invader.height

    # =========================================================================
    # COLLISIONS
    # =========================================================================

    def _player_bullets_vs_invaders(self) -> None:
        for bullet in self.state.bullets:
            if bullet.owner_is_enemy or bullet.pending_removal:
                continue
            for invader in self.state.invaders:
                if not invader.pending_removal and overlaps(bullet, invader):
                    bullet.pending_removal = True
                    invader.pending_removal = True
                    self.state.score += self.config.INVADER_POINTS
                    break

    def _player_bullets_vs_boss(self) -> None:
        boss = self.state.boss
        if boss is None:
            return
        for bullet in self.state.bullets:
            if boss.defeated:
                break
            if bullet.owner_is_enemy or bullet.pending_removal:
                continue
            if overlaps(bullet, boss):
                bullet.pending_removal = True
                boss.health -= 1

    def _enemy_bullets_vs_player(self) -> None:
        player = self.state.player
        assert player is not None
        for bullet in self.state.bullets:
            if bullet.owner_is_enemy and not bullet.pending_removal and overlaps(bullet, player):
                bullet.pending_removal = True
                self._kill_player()
                return

    def _invaders_vs_player(self) -> None:
        player = self.state.player
        assert player is not None
        for invader in self.state.invaders:
            if not invader.pending_removal and overlaps(invader, player):
                self._kill_player()
                return

    def _invaders_reach_bottom(self) -> None:
        height = self.config.SCREEN_HEIGHT
        for invader in self.state.invaders:
            if not invader.pending_removal and invader.y + invader.height >= height:
                self._game_over("invasion")
                return

    def _boss_vs_player(self) -> None:
        boss = self.state.boss
        player = self.state.player
        assert player is not None
        if boss is not None and overlaps(boss, player):
            self._kill_player()

    def _compact(self) -> None:
        state = self.state
        state.bullets = [b for b in state.bullets if not b.pending_removal]
        state.invaders = [inv for inv in state.invaders if not inv.pending_removal]

    # =========================================================================
    # WAVES AND TERMINATION
    # =========================================================================

    def _settle_wave(self) -> None:
        state = self.state
        if state.boss is not None and state.boss.defeated:
            self._defeat_boss()
        elif state.boss is None and not state.invaders:
            self._spawn_boss()

    def _spawn_boss(self) -> None:
        self.state.boss = spawn_boss(self.config)
        logger.debug("Boss spawned at step %d", self.state.steps)

    def _defeat_boss(self) -> None:
        state = self.state
        state.boss = None
        state.score += self.config.BOSS_POINTS
        state.invaders = spawn_invader_grid(self.config)
        state.wave += 1
        logger.debug("Boss defeated, wave %d begins (score=%d)", state.wave, state.score)

    def _kill_player(self) -> None:
        assert self.state.player is not None
        self.state.player.alive = False
        self._game_over("player destroyed")

    def _game_over(self, cause: str) -> None:
        self.state.is_playing = False
        self.state.is_game_over = True
        logger.debug("Game over (%s) after %d steps, score=%d",
                     cause, self.state.steps, self.state.score)
