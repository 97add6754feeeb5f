"""
Pytest configuration for the test suite.

This file is automatically loaded by pytest and applies configuration
to all tests in the tests/ directory.
"""

import os
import sys

# Headless pygame for renderer tests (must happen before pygame is imported)
os.environ.setdefault('SDL_VIDEODRIVER', 'dummy')
os.environ.setdefault('SDL_AUDIODRIVER', 'dummy')

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from config import Config


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def config(tmp_path):
    """Default configuration on CPU, with files kept under tmp_path."""
    cfg = Config()
    cfg.FORCE_CPU = True
    cfg.MODEL_DIR = str(tmp_path / 'models')
    cfg.LOG_DIR = str(tmp_path / 'logs')
    cfg.LOG_TO_FILE = False
    return cfg


@pytest.fixture
def calm_config(config):
    """Configuration where nothing fires unless the test makes it."""
    config.INVADER_FIRE_CHANCE = 0.0
    config.BOSS_FIRE_CHANCE = 0.0
    return config
