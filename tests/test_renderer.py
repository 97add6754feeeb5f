"""
Tests for the pygame renderer and keyboard mapping.

Runs against an off-screen surface with the dummy SDL video driver.
"""

import random
import sys
import os
from collections import defaultdict

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pygame

from invader_dqn.game.engine import SimulationEngine
from invader_dqn.game.entities import Boss, InputIntent
from invader_dqn.visualizer.renderer import Renderer, Star, intent_from_keys


@pytest.fixture(scope='module', autouse=True)
def pygame_session():
    pygame.init()
    yield
    pygame.quit()


@pytest.fixture
def surface():
    return pygame.Surface((800, 600))


@pytest.fixture
def renderer(config):
    return Renderer(config, seed=0)


@pytest.fixture
def engine(calm_config):
    engine = SimulationEngine(calm_config, seed=0)
    engine.reset()
    return engine


def rgb(surface, x, y):
    return tuple(surface.get_at((x, y)))[:3]


class TestDraw:
    """Test drawing snapshots."""

    def test_player_sprite_drawn(self, renderer, surface, engine):
        """Tip of the cannon sits in the 4th sprite column."""
        renderer.draw(surface, engine.snapshot())
        assert rgb(surface, 399, 557) == (57, 255, 20)

    def test_boss_health_bar(self, renderer, surface, engine):
        """Quarter health: red fill over a grey track, 15px above the boss."""
        engine.state.invaders = []
        engine.state.boss = Boss(x=366, y=50, width=68, height=28, vx=3, health=5, max_health=20)
        renderer.draw(surface, engine.snapshot())
        assert rgb(surface, 367, 36) == (255, 0, 0)
        assert rgb(surface, 420, 36) == (85, 85, 85)

    def test_healthy_boss_bar_is_green(self, renderer, surface, engine):
        engine.state.invaders = []
        engine.state.boss = Boss(x=366, y=50, width=68, height=28, vx=3, health=20, max_health=20)
        renderer.draw(surface, engine.snapshot())
        assert rgb(surface, 420, 36) == (0, 255, 0)

    def test_snapshot_unchanged(self, renderer, surface, engine):
        snapshot = engine.snapshot()
        before = snapshot.entities
        renderer.draw(surface, snapshot, status_lines=["TRAINING", "eps 0.5"])
        assert snapshot.entities == before
        assert engine.snapshot() == snapshot

    def test_game_over_and_idle_screens(self, renderer, surface, config):
        """Overlays draw without a running episode."""
        engine = SimulationEngine(config)
        renderer.draw(surface, engine.snapshot())

        engine.reset()
        engine.state.is_playing = False
        engine.state.is_game_over = True
        renderer.draw(surface, engine.snapshot())

    def test_sprites_cached(self, renderer, surface, engine):
        renderer.draw(surface, engine.snapshot())
        cached = len(renderer._sprite_cache)
        renderer.draw(surface, engine.snapshot())
        assert len(renderer._sprite_cache) == cached


class TestStars:
    """Test the starfield."""

    def test_star_count(self, renderer, config):
        assert len(renderer.stars) == config.STAR_COUNT

    def test_star_wraps_and_clamps(self):
        star = Star(x=10, y=599.9, size=1, speed=0.5, brightness=1.0)
        star.update(800, 600, random.Random(0))
        assert star.y == 0.0
        assert 0.3 <= star.brightness <= 1.0


class TestInput:
    """Test keyboard mapping."""

    def _keys(self, *held):
        pressed = defaultdict(bool)
        for key in held:
            pressed[key] = True
        return pressed

    def test_nothing_held(self):
        assert intent_from_keys(self._keys()) == InputIntent()

    def test_arrows_and_space(self):
        assert intent_from_keys(self._keys(pygame.K_RIGHT, pygame.K_SPACE)) == \
            InputIntent(move_right=True, fire=True)
        assert intent_from_keys(self._keys(pygame.K_a)) == InputIntent(move_left=True)

    def test_left_wins(self):
        assert intent_from_keys(self._keys(pygame.K_LEFT, pygame.K_RIGHT)) == InputIntent(move_left=True)
