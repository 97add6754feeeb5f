"""
Entity Model
============

Plain data records for everything that lives on the playfield.

The entity set is closed: Player, Invader, Boss and Bullet. Each record
carries an `EntityKind` tag, and per-operation behaviour (motion update,
render snapshot) is looked up in dispatch tables keyed by that tag rather
than through methods on a class hierarchy.

Geometry:
    Every entity is an axis-aligned rectangle with its origin at the top-left
    corner. Two rectangles overlap iff each origin is strictly less than the
    other's far edge on both axes.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Dict, List, Optional, Tuple, Union

from config import Config


class EntityKind(Enum):
    """Tag identifying the variant of an entity record."""
    PLAYER = 'player'
    INVADER = 'invader'
    BOSS = 'boss'
    BULLET = 'bullet'


@dataclass(frozen=True)
class InputIntent:
    """Per-step control input: horizontal movement and the fire button."""
    move_left: bool = False
    move_right: bool = False
    fire: bool = False


@dataclass
class Player:
    """The player's cannon at the bottom of the screen."""
    x: float
    y: float
    width: int
    height: int
    shoot_cooldown: int = 0
    alive: bool = True

    kind: ClassVar[EntityKind] = EntityKind.PLAYER


@dataclass
class Invader:
    """One member of the invader formation."""
    x: float
    y: float
    width: int
    height: int
    vx: float
    row: int = 0
    frame: int = 0
    frame_timer: int = 0
    pending_removal: bool = False

    kind: ClassVar[EntityKind] = EntityKind.INVADER


@dataclass
class Boss:
    """The saucer that appears once a wave has been cleared."""
    x: float
    y: float
    width: int
    height: int
    vx: float
    health: int
    max_health: int
    angle: float = 0.0

    kind: ClassVar[EntityKind] = EntityKind.BOSS

    @property
    def defeated(self) -> bool:
        return self.health <= 0


@dataclass
class Bullet:
    """A projectile. Negative speed travels upward (player-owned)."""
    x: float
    y: float
    width: int
    height: int
    speed: float
    owner_is_enemy: bool
    pending_removal: bool = False

    kind: ClassVar[EntityKind] = EntityKind.BULLET


Entity = Union[Player, Invader, Boss, Bullet]


@dataclass(frozen=True)
class EntityView:
    """Read-only description of one entity for the renderer."""
    kind: EntityKind
    x: float
    y: float
    width: int
    height: int
    color: Tuple[int, int, int]
    frame: int = 0
    health: Optional[int] = None
    max_health: Optional[int] = None
    owner_is_enemy: bool = False


def overlaps(a: Entity, b: Entity) -> bool:
    """Axis-aligned rectangle intersection test."""
    return (
        a.x < b.x + b.width and
        a.x + a.width > b.x and
        a.y < b.y + b.height and
        a.y + a.height > b.y
    )


# =============================================================================
# FACTORIES
# =============================================================================

def spawn_player(config: Config) -> Player:
    """Create the player at bottom-center."""
    return Player(
        x=config.SCREEN_WIDTH / 2 - config.PLAYER_WIDTH / 2,
        y=config.SCREEN_HEIGHT - config.PLAYER_HEIGHT - config.PLAYER_BOTTOM_MARGIN,
        width=config.PLAYER_WIDTH,
        height=config.PLAYER_HEIGHT,
    )


def spawn_invader_grid(config: Config) -> List[Invader]:
    """Create a fresh formation, row by row, left to right."""
    step_x = config.INVADER_WIDTH + config.INVADER_PADDING
    step_y = config.INVADER_HEIGHT + config.INVADER_PADDING
    offset_left = config.INVADER_OFFSET_LEFT

    invaders = []
    for row in range(config.INVADER_ROWS):
        for col in range(config.INVADER_COLS):
            invaders.append(Invader(
                x=offset_left + col * step_x,
                y=config.INVADER_OFFSET_TOP + row * step_y,
                width=config.INVADER_WIDTH,
                height=config.INVADER_HEIGHT,
                vx=config.INVADER_SPEED,
                row=row,
            ))
    return invaders


def spawn_boss(config: Config) -> Boss:
    """Create the boss, horizontally centered at its base height."""
    return Boss(
        x=config.SCREEN_WIDTH / 2 - config.BOSS_WIDTH / 2,
        y=config.BOSS_BASE_Y,
        width=config.BOSS_WIDTH,
        height=config.BOSS_HEIGHT,
        vx=config.BOSS_SPEED,
        health=config.BOSS_HEALTH,
        max_health=config.BOSS_HEALTH,
    )


def make_bullet(config: Config, x: float, y: float, speed: float, owner_is_enemy: bool) -> Bullet:
    return Bullet(
        x=x,
        y=y,
        width=config.BULLET_WIDTH,
        height=config.BULLET_HEIGHT,
        speed=speed,
        owner_is_enemy=owner_is_enemy,
    )


# =============================================================================
# UPDATE DISPATCH
# =============================================================================

def _update_player(player: Player, config: Config, intent: InputIntent) -> None:
    if intent.move_left:
        player.x -= config.PLAYER_SPEED
    if intent.move_right:
        player.x += config.PLAYER_SPEED

    max_x = config.SCREEN_WIDTH - player.width
    if player.x < 0:
        player.x = 0
    if player.x > max_x:
        player.x = max_x

    if player.shoot_cooldown > 0:
        player.shoot_cooldown -= 1


def _update_invader(invader: Invader, config: Config, intent: InputIntent) -> None:
    invader.x += invader.vx
    invader.frame_timer += 1
    if invader.frame_timer >= config.INVADER_FRAME_INTERVAL:
        invader.frame = 1 - invader.frame
        invader.frame_timer = 0


def _update_boss(boss: Boss, config: Config, intent: InputIntent) -> None:
    boss.x += boss.vx
    boss.angle += config.BOSS_ANGLE_STEP
    boss.y = config.BOSS_BASE_Y + math.sin(boss.angle) * config.BOSS_AMPLITUDE

    # Bounce off the side walls
    if boss.x <= 0 or boss.x + boss.width >= config.SCREEN_WIDTH:
        boss.vx *= -1


def _update_bullet(bullet: Bullet, config: Config, intent: InputIntent) -> None:
    bullet.y += bullet.speed
    if bullet.y < 0 or bullet.y > config.SCREEN_HEIGHT:
        bullet.pending_removal = True


UPDATERS: Dict[EntityKind, Callable[..., None]] = {
    EntityKind.PLAYER: _update_player,
    EntityKind.INVADER: _update_invader,
    EntityKind.BOSS: _update_boss,
    EntityKind.BULLET: _update_bullet,
}


def update_entity(entity: Entity, config: Config, intent: Optional[InputIntent] = None) -> None:
    """Advance one entity's own motion by a single step."""
    UPDATERS[entity.kind](entity, config, intent or InputIntent())


# =============================================================================
# SNAPSHOT DISPATCH
# =============================================================================

def _view_player(player: Player, config: Config) -> EntityView:
    return EntityView(EntityKind.PLAYER, player.x, player.y, player.width, player.height,
                      config.COLOR_PLAYER)


def _view_invader(invader: Invader, config: Config) -> EntityView:
    colors = config.COLOR_INVADER_ROWS
    color = colors[invader.row % len(colors)]
    return EntityView(EntityKind.INVADER, invader.x, invader.y, invader.width, invader.height,
                      color, frame=invader.frame)


def _view_boss(boss: Boss, config: Config) -> EntityView:
    return EntityView(EntityKind.BOSS, boss.x, boss.y, boss.width, boss.height,
                      config.COLOR_BOSS, health=boss.health, max_health=boss.max_health)


def _view_bullet(bullet: Bullet, config: Config) -> EntityView:
    color = config.COLOR_ENEMY_BULLET if bullet.owner_is_enemy else config.COLOR_PLAYER_BULLET
    return EntityView(EntityKind.BULLET, bullet.x, bullet.y, bullet.width, bullet.height,
                      color, owner_is_enemy=bullet.owner_is_enemy)


SNAPSHOTTERS: Dict[EntityKind, Callable[..., EntityView]] = {
    EntityKind.PLAYER: _view_player,
    EntityKind.INVADER: _view_invader,
    EntityKind.BOSS: _view_boss,
    EntityKind.BULLET: _view_bullet,
}


def view_entity(entity: Entity, config: Config) -> EntityView:
    """Build the read-only view of an entity."""
    return SNAPSHOTTERS[entity.kind](entity, config)
