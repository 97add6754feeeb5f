"""
Tests for InvaderEnv, the reset / observe / step contract.

These tests verify:
    - Observation layout and defaults for absent entities
    - Reward shaping
    - Error handling for out-of-contract calls
    - The boss-or-invaders invariant after every step
"""

import sys
import os

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from invader_dqn.game import Action, InvaderEnv
from invader_dqn.game.base_game import BaseGame
from invader_dqn.game.entities import Boss, Invader, make_bullet


@pytest.fixture
def env(calm_config):
    env = InvaderEnv(calm_config, seed=0)
    env.reset()
    return env


class TestInterface:
    """Test the BaseGame contract."""

    def test_is_base_game(self, env):
        assert isinstance(env, BaseGame)

    def test_sizes(self, env):
        """7 observation features, 4 actions."""
        assert env.state_size == 7
        assert env.action_size == 4

    def test_reset_returns_observation(self, calm_config):
        env = InvaderEnv(calm_config)
        obs = env.reset()
        assert isinstance(obs, np.ndarray)
        assert obs.shape == (7,)
        assert obs.dtype == np.float32

    def test_get_state_alias(self, env):
        np.testing.assert_array_equal(env.get_state(), env.observe())


class TestObservation:
    """Test feature extraction."""

    def test_initial_observation(self, env):
        """Player centered, no enemy bullets, no boss."""
        obs = env.observe()
        assert obs[0] == pytest.approx(386 / 800)
        assert obs[3] == pytest.approx(0.5)
        assert obs[4] == pytest.approx(0.0)
        assert obs[5] == pytest.approx(0.5)
        assert obs[6] == 0.0

    def test_hand_built_state(self, env):
        """Known layout gives known features."""
        state = env.state
        state.player.x = 398
        state.invaders = [Invader(x=50, y=90, width=33, height=24, vx=2)]
        state.bullets = []
        state.boss = None

        obs = env.observe()

        expected = [0.4975, 0.0625, 0.15, 0.5, 0.0, 0.5, 0.0]
        np.testing.assert_allclose(obs, expected, rtol=1e-6)

    def test_nearest_invader_by_manhattan_distance(self, env):
        """The invader closest to the player is reported."""
        state = env.state
        state.invaders = [
            Invader(x=0, y=80, width=33, height=24, vx=2),
            Invader(x=400, y=300, width=33, height=24, vx=2),
        ]
        obs = env.observe()
        assert obs[1] == pytest.approx(400 / 800)
        assert obs[2] == pytest.approx(300 / 600)

    def test_player_bullets_ignored(self, env):
        """Only enemy bullets are reported."""
        config = env.config
        env.state.bullets = [
            make_bullet(config, 380, 500, -7, owner_is_enemy=False),
            make_bullet(config, 100, 200, 5, owner_is_enemy=True),
        ]
        obs = env.observe()
        assert obs[3] == pytest.approx(100 / 800)
        assert obs[4] == pytest.approx(200 / 600)

    def test_boss_features(self, env):
        """Boss x and presence flag."""
        env.state.invaders = []
        env.state.boss = Boss(x=200, y=50, width=68, height=28, vx=3, health=20, max_health=20)
        obs = env.observe()
        assert obs[1] == pytest.approx(0.5)
        assert obs[2] == pytest.approx(0.0)
        assert obs[5] == pytest.approx(0.25)
        assert obs[6] == 1.0


class TestRewards:
    """Test reward shaping."""

    def test_survival_reward(self, env):
        """A quiet step is worth 0.1."""
        _, reward, done = env.step(Action.STAY)
        assert reward == pytest.approx(0.1)
        assert not done

    def test_kill_reward(self, env):
        """Scoring adds 10."""
        env.state.bullets = [make_bullet(env.config, 200, 100, -7, owner_is_enemy=False)]
        _, reward, done = env.step(Action.STAY)
        assert reward == pytest.approx(10.1)
        assert not done

    def test_boss_bonus_counts_once(self, env):
        """Boss defeat is a score increase like any other."""
        env.state.invaders = []
        env.state.boss = Boss(x=366, y=50, width=68, height=28, vx=3, health=1, max_health=20)
        env.state.bullets = [make_bullet(env.config, 400, 70, -7, owner_is_enemy=False)]
        _, reward, _ = env.step(Action.STAY)
        assert reward == pytest.approx(10.1)
        assert env.state.wave == 2

    def test_game_over_penalty(self, env):
        """Losing costs 50."""
        env.state.bullets = [make_bullet(env.config, 390, 550, 5, owner_is_enemy=True)]
        _, reward, done = env.step(Action.STAY)
        assert reward == pytest.approx(-49.9)
        assert done
        assert env.is_terminal


class TestActions:
    """Test action mapping."""

    def test_left_and_right(self, env):
        env.step(Action.LEFT)
        assert env.state.player.x == 381
        env.step(Action.RIGHT)
        env.step(Action.RIGHT)
        assert env.state.player.x == 391

    def test_shoot(self, env):
        env.step(Action.SHOOT)
        assert len(env.state.bullets) == 1

    def test_plain_int_accepted(self, env):
        env.step(3)
        assert len(env.state.bullets) == 1


class TestErrors:
    """Test out-of-contract calls."""

    def test_step_before_reset(self, calm_config):
        env = InvaderEnv(calm_config)
        with pytest.raises(RuntimeError):
            env.step(Action.STAY)

    def test_observe_before_reset(self, calm_config):
        env = InvaderEnv(calm_config)
        with pytest.raises(RuntimeError):
            env.observe()

    def test_step_after_game_over(self, env):
        env.state.bullets = [make_bullet(env.config, 390, 550, 5, owner_is_enemy=True)]
        env.step(Action.STAY)
        with pytest.raises(RuntimeError):
            env.step(Action.STAY)

    @pytest.mark.parametrize("action", [-1, 4, 99])
    def test_invalid_action(self, env, action):
        with pytest.raises(ValueError):
            env.step(action)

    def test_reset_after_game_over(self, env):
        """reset() always starts a playable episode."""
        env.state.bullets = [make_bullet(env.config, 390, 550, 5, owner_is_enemy=True)]
        env.step(Action.STAY)
        env.reset()
        assert not env.is_terminal
        assert env.state.score == 0
        env.step(Action.STAY)


class TestInvariants:
    """Test properties that hold after every step."""

    def test_field_never_empty(self, env):
        """Killing the last invader leaves a boss on the field."""
        env.state.invaders = [Invader(x=300, y=300, width=33, height=24, vx=0)]
        env.state.bullets = [make_bullet(env.config, 310, 315, -7, owner_is_enemy=False)]
        env.step(Action.STAY)
        assert env.state.invaders or env.state.boss is not None
        assert env.observe()[6] == 1.0

    @pytest.mark.slow
    def test_random_play_keeps_invariants(self, config):
        """Random episodes keep a bounded observation and a populated field."""
        env = InvaderEnv(config, seed=7)
        rng = np.random.default_rng(7)
        env.reset()
        for _ in range(2000):
            obs, reward, done = env.step(int(rng.integers(4)))
            assert obs.shape == (7,)
            assert np.all(np.isfinite(obs))
            assert env.state.invaders or env.state.boss is not None or done
            if done:
                assert reward < 0
                env.reset()

    def test_info(self, env):
        info = env.get_info()
        assert info['score'] == 0
        assert info['wave'] == 1
        assert info['invaders_remaining'] == 40
        assert info['boss_health'] is None
        assert info['player_alive']
