"""
Game Renderer
=============

Draws RenderSnapshots with pygame and turns keyboard state into InputIntent.

The renderer only reads snapshots. Cosmetic state that the simulation does
not model (the scrolling starfield, cached sprite surfaces) lives here.
"""

import random
from typing import Dict, List, Optional, Sequence, Tuple

import pygame

from config import Config
from ..game.engine import RenderSnapshot
from ..game.entities import EntityKind, EntityView, InputIntent


PLAYER_SPRITE = [
    "   1   ",
    "  111  ",
    " 11111 ",
    "1111111",
    "11   11",
    "1     1",
]

INVADER_SPRITES = [
    [
        "  1     1  ",
        "   1   1   ",
        "  1111111  ",
        " 11 111 11 ",
        "11111111111",
        "1 1111111 1",
        "1 1     1 1",
        "   11 11   ",
    ],
    [
        "  1     1  ",
        "1  1   1  1",
        "1 1111111 1",
        "111 111 111",
        "11111111111",
        " 111111111 ",
        "  1     1  ",
        " 1       1 ",
    ],
]

BOSS_SPRITE = [
    "      11111      ",
    "    111111111    ",
    "  1111111111111  ",
    " 11 111111111 11 ",
    "11111111111111111",
    "1   111111111   1",
    "     111 111     ",
]

HEALTH_BAR_HEIGHT = 5
HEALTH_BAR_OFFSET = 15


class Star:
    """A background star."""

    def __init__(self, x: float, y: float, size: float, speed: float, brightness: float):
        self.x = x
        self.y = y
        self.size = size
        self.speed = speed
        self.brightness = brightness

    def update(self, width: int, height: int, rng: random.Random) -> None:
        self.y += self.speed
        if self.y > height:
            self.y = 0.0
            self.x = rng.random() * width
        self.brightness = min(1.0, max(0.3, self.brightness + rng.random() * 0.1 - 0.05))

    def draw(self, surface: pygame.Surface) -> None:
        level = int(255 * self.brightness)
        size = max(1, int(self.size))
        pygame.draw.rect(surface, (level, level, level), (int(self.x), int(self.y), size, size))


class Renderer:
    """
    Pixel-art renderer for the invader game.

    Example:
        >>> renderer = Renderer(config)
        >>> renderer.draw(screen, env.snapshot(), status_lines=["TRAINING"])
    """

    def __init__(self, config: Config, seed: Optional[int] = None):
        self.config = config
        self._rng = random.Random(seed)

        if not pygame.font.get_init():
            pygame.font.init()
        self._font_small = pygame.font.Font(None, 24)
        self._font_medium = pygame.font.Font(None, 36)
        self._font_large = pygame.font.Font(None, 72)

        self._sprite_cache: Dict[Tuple[str, int, int, int, Tuple[int, int, int]], pygame.Surface] = {}
        self.stars: List[Star] = []
        self._create_stars()

    def _create_stars(self) -> None:
        """Create background starfield."""
        width, height = self.config.SCREEN_WIDTH, self.config.SCREEN_HEIGHT
        self.stars = [
            Star(
                x=self._rng.random() * width,
                y=self._rng.random() * height,
                size=self._rng.random() * 2,
                speed=self._rng.random() * 0.5 + 0.1,
                brightness=self._rng.random(),
            )
            for _ in range(self.config.STAR_COUNT)
        ]

    # =========================================================================
    # DRAWING
    # =========================================================================

    def draw(
        self,
        surface: pygame.Surface,
        snapshot: RenderSnapshot,
        status_lines: Sequence[str] = ()
    ) -> None:
        """
        Draw one frame.

        Args:
            surface: Target surface
            snapshot: Simulation state to draw (never modified)
            status_lines: Extra HUD text, e.g. training statistics
        """
        surface.fill(self.config.COLOR_BACKGROUND)

        for star in self.stars:
            star.update(snapshot.width, snapshot.height, self._rng)
            star.draw(surface)

        for view in snapshot.entities:
            self._draw_entity(surface, view)

        self._draw_hud(surface, snapshot, status_lines)

        if snapshot.is_game_over:
            self._draw_game_over(surface, snapshot)
        elif not snapshot.is_playing:
            self._draw_start_prompt(surface, snapshot)

    def _draw_entity(self, surface: pygame.Surface, view: EntityView) -> None:
        if view.kind == EntityKind.BULLET:
            rect = pygame.Rect(int(view.x), int(view.y), view.width, view.height)
            pygame.draw.rect(surface, view.color, rect)
            return

        if view.kind == EntityKind.PLAYER:
            rows, key = PLAYER_SPRITE, 'player'
        elif view.kind == EntityKind.INVADER:
            rows, key = INVADER_SPRITES[view.frame % 2], f'invader{view.frame % 2}'
        else:
            rows, key = BOSS_SPRITE, 'boss'

        sprite = self._sprite(key, rows, view.width, view.height, view.color)
        surface.blit(sprite, (int(view.x), int(view.y)))

        if view.kind == EntityKind.BOSS and view.health is not None and view.max_health:
            self._draw_health_bar(surface, view)

    def _sprite(
        self,
        key: str,
        rows: List[str],
        width: int,
        height: int,
        color: Tuple[int, int, int]
    ) -> pygame.Surface:
        """Rasterize a pixel-art sprite to the entity's size, cached."""
        cache_key = (key, len(rows), width, height, color)
        sprite = self._sprite_cache.get(cache_key)
        if sprite is not None:
            return sprite

        sprite = pygame.Surface((width, height), pygame.SRCALPHA)
        pixel_w = width / len(rows[0])
        pixel_h = height / len(rows)
        for r, row in enumerate(rows):
            for c, cell in enumerate(row):
                if cell != ' ':
                    rect = pygame.Rect(
                        int(c * pixel_w), int(r * pixel_h),
                        max(1, int(pixel_w)), max(1, int(pixel_h)),
                    )
                    pygame.draw.rect(sprite, color, rect)

        self._sprite_cache[cache_key] = sprite
        return sprite

    def _draw_health_bar(self, surface: pygame.Surface, view: EntityView) -> None:
        x = int(view.x)
        y = int(view.y) - HEALTH_BAR_OFFSET
        pygame.draw.rect(surface, self.config.COLOR_HEALTH_BACK, (x, y, view.width, HEALTH_BAR_HEIGHT))

        fraction = max(0.0, view.health / view.max_health)
        color = self.config.COLOR_HEALTH_HIGH if fraction > 0.5 else self.config.COLOR_HEALTH_LOW
        filled = int(view.width * fraction)
        if filled > 0:
            pygame.draw.rect(surface, color, (x, y, filled, HEALTH_BAR_HEIGHT))

    def _draw_hud(self, surface: pygame.Surface, snapshot: RenderSnapshot, status_lines: Sequence[str]) -> None:
        text = self._font_medium.render(f"SCORE: {snapshot.score}", True, self.config.COLOR_TEXT)
        surface.blit(text, (10, 10))

        wave = self._font_medium.render(f"WAVE {snapshot.wave}", True, self.config.COLOR_TEXT)
        surface.blit(wave, wave.get_rect(topright=(snapshot.width - 10, 10)))

        y = 42
        for line in status_lines:
            line_surf = self._font_small.render(line, True, self.config.COLOR_TEXT)
            surface.blit(line_surf, (10, y))
            y += 20

    def _draw_centered(self, surface: pygame.Surface, font: pygame.font.Font, message: str,
                       color: Tuple[int, int, int], center: Tuple[int, int]) -> None:
        text = font.render(message, True, color)
        surface.blit(text, text.get_rect(center=center))

    def _draw_game_over(self, surface: pygame.Surface, snapshot: RenderSnapshot) -> None:
        cx, cy = snapshot.width // 2, snapshot.height // 2
        self._draw_centered(surface, self._font_large, "GAME OVER", self.config.COLOR_ENEMY_BULLET, (cx, cy))
        self._draw_centered(surface, self._font_medium, f"Final Score: {snapshot.score}",
                            self.config.COLOR_TEXT, (cx, cy + 50))
        self._draw_centered(surface, self._font_small, "Press SPACE to restart",
                            self.config.COLOR_TEXT, (cx, cy + 90))

    def _draw_start_prompt(self, surface: pygame.Surface, snapshot: RenderSnapshot) -> None:
        cx, cy = snapshot.width // 2, snapshot.height // 2
        self._draw_centered(surface, self._font_large, "INVADERS", self.config.COLOR_PLAYER, (cx, cy - 40))
        self._draw_centered(surface, self._font_small, "Press SPACE to start  |  T to train",
                            self.config.COLOR_TEXT, (cx, cy + 20))


# =============================================================================
# INPUT
# =============================================================================

LEFT_KEYS = (pygame.K_LEFT, pygame.K_a)
RIGHT_KEYS = (pygame.K_RIGHT, pygame.K_d)
FIRE_KEYS = (pygame.K_SPACE,)


def intent_from_keys(pressed: Sequence[bool]) -> InputIntent:
    """
    Map held keys (as from pygame.key.get_pressed()) to an InputIntent.

    Left wins when left and right are both held.
    """
    left = any(pressed[key] for key in LEFT_KEYS)
    right = any(pressed[key] for key in RIGHT_KEYS) and not left
    fire = any(pressed[key] for key in FIRE_KEYS)
    return InputIntent(move_left=left, move_right=right, fire=fire)
