"""
Tests for Config defaults and validation.

These tests verify that the simulation constants match the game's
geometry and that invalid configurations are caught early rather than
causing cryptic runtime errors during training.
"""

import pytest
import sys
import os

import torch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Config


class TestConfigDefaults:
    """Test the default values the simulation depends on."""

    def test_screen_size(self):
        """Playfield is 800x600."""
        cfg = Config()
        assert (cfg.SCREEN_WIDTH, cfg.SCREEN_HEIGHT) == (800, 600)

    def test_network_shape(self):
        """7 inputs, two hidden layers of 24, 4 actions."""
        cfg = Config()
        assert cfg.STATE_SIZE == 7
        assert cfg.HIDDEN_LAYERS == [24, 24]
        assert cfg.ACTION_SIZE == 4

    def test_learning_hyperparameters(self):
        """Exploration and learning defaults."""
        cfg = Config()
        assert cfg.EPSILON_START == 1.0
        assert cfg.EPSILON_END == 0.01
        assert cfg.EPSILON_DECAY == 0.995
        assert cfg.GAMMA == 0.95
        assert cfg.LEARNING_RATE == 0.001
        assert cfg.BATCH_SIZE == 32
        assert cfg.MEMORY_SIZE == 2000
        assert cfg.USE_TARGET_NETWORK is False

    def test_invader_grid_is_centered(self):
        """8 columns of 33px plus 20px padding leave 188px on the left."""
        cfg = Config()
        assert cfg.INVADER_OFFSET_LEFT == 188

    def test_store_dir_follows_model_dir(self):
        """STORE_DIR lives under MODEL_DIR."""
        cfg = Config()
        cfg.MODEL_DIR = 'somewhere'
        assert cfg.STORE_DIR == os.path.join('somewhere', 'store')

    def test_force_cpu(self):
        """FORCE_CPU pins the device to CPU."""
        cfg = Config()
        cfg.FORCE_CPU = True
        assert cfg.DEVICE == torch.device('cpu')

    def test_hidden_layers_not_shared(self):
        """Mutable defaults are per instance."""
        a, b = Config(), Config()
        a.HIDDEN_LAYERS.append(8)
        assert b.HIDDEN_LAYERS == [24, 24]


class TestConfigValidation:
    """Test Config.__post_init__ validation."""

    def test_valid_config_passes(self):
        """Default config should validate without errors."""
        Config().__post_init__()

    def test_invalid_learning_rate(self):
        """LEARNING_RATE=0 should fail validation."""
        cfg = Config()
        cfg.LEARNING_RATE = 0
        with pytest.raises(AssertionError):
            cfg.__post_init__()

    def test_invalid_gamma_exceeds_one(self):
        """GAMMA > 1 should fail validation."""
        cfg = Config()
        cfg.GAMMA = 1.5
        with pytest.raises(AssertionError):
            cfg.__post_init__()

    def test_memory_smaller_than_batch(self):
        """A buffer that can never fill a batch is rejected."""
        with pytest.raises(AssertionError):
            Config(MEMORY_SIZE=10, BATCH_SIZE=32)

    def test_epsilon_end_above_start(self):
        """EPSILON_END > EPSILON_START should fail validation."""
        with pytest.raises(AssertionError):
            Config(EPSILON_START=0.1, EPSILON_END=0.5)

    def test_empty_invader_grid(self):
        """A wave needs at least one invader."""
        with pytest.raises(AssertionError):
            Config(INVADER_ROWS=0)
