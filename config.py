"""
Configuration file for Invader DQN
==================================

All simulation constants, reward shaping, hyperparameters and display options
are centralized here. Modify these values to experiment with different
training configurations.

Usage:
    from config import Config
    cfg = Config()
    print(cfg.LEARNING_RATE)
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Optional
import os
import torch


@dataclass
class Config:
    """
    Central configuration for the entire project.

    Sections:
    1. Screen - Playfield dimensions and frame rate
    2. Player / Invaders / Boss / Bullets - Simulation constants
    3. Rewards - Environment reward shaping
    4. Neural Network - Architecture configuration
    5. Training - Learning hyperparameters
    6. Exploration - Epsilon-greedy settings
    7. Visualization - Colors for the renderer
    8. System - Hardware, paths and logging
    """

    # =========================================================================
    # SCREEN SETTINGS
    # =========================================================================

    SCREEN_WIDTH: int = 800
    SCREEN_HEIGHT: int = 600
    FPS: int = 60

    # =========================================================================
    # PLAYER
    # =========================================================================

    # 7x6 sprite drawn at 4px per cell
    PLAYER_WIDTH: int = 28
    PLAYER_HEIGHT: int = 24
    PLAYER_SPEED: int = 5
    PLAYER_BOTTOM_MARGIN: int = 20

    # Frames between two player shots
    PLAYER_SHOOT_INTERVAL: int = 20
    PLAYER_BULLET_SPEED: int = -7

    # =========================================================================
    # INVADERS
    # =========================================================================

    INVADER_ROWS: int = 5
    INVADER_COLS: int = 8

    # 11x8 sprite drawn at 3px per cell
    INVADER_WIDTH: int = 33
    INVADER_HEIGHT: int = 24
    INVADER_PADDING: int = 20
    INVADER_OFFSET_TOP: int = 80
    INVADER_SPEED: int = 2

    # Steps between animation frame swaps
    INVADER_FRAME_INTERVAL: int = 30

    # Chance per step that one random invader fires
    INVADER_FIRE_CHANCE: float = 0.02
    INVADER_POINTS: int = 10

    # =========================================================================
    # BOSS
    # =========================================================================

    # 17x7 sprite drawn at 4px per cell
    BOSS_WIDTH: int = 68
    BOSS_HEIGHT: int = 28
    BOSS_BASE_Y: int = 50
    BOSS_SPEED: int = 3
    BOSS_HEALTH: int = 20
    BOSS_AMPLITUDE: float = 30.0
    BOSS_ANGLE_STEP: float = 0.05
    BOSS_FIRE_CHANCE: float = 0.03

    # Horizontal offset of the two outer shots in the spread
    BOSS_SPREAD: int = 20
    BOSS_POINTS: int = 500

    # =========================================================================
    # BULLETS
    # =========================================================================

    BULLET_WIDTH: int = 4
    BULLET_HEIGHT: int = 10
    ENEMY_BULLET_SPEED: int = 5

    # =========================================================================
    # REWARD SHAPING
    # =========================================================================

    REWARD_STEP: float = 0.1        # Survival shaping, every step
    REWARD_SCORE: float = 10.0      # Any step in which the score went up
    REWARD_GAME_OVER: float = -50.0  # Step that ended the episode

    # =========================================================================
    # NEURAL NETWORK ARCHITECTURE
    # =========================================================================

    # Observation: player x, nearest invader (x, y), nearest enemy bullet (x, y),
    # boss x and boss presence flag
    STATE_SIZE: int = 7

    # Action space: STAY, LEFT, RIGHT, SHOOT
    ACTION_SIZE: int = 4

    HIDDEN_LAYERS: List[int] = field(default_factory=lambda: [24, 24])

    # Activation function: 'relu', 'leaky_relu', 'tanh', 'elu'
    ACTIVATION: str = 'relu'

    # =========================================================================
    # TRAINING HYPERPARAMETERS
    # =========================================================================

    LEARNING_RATE: float = 0.001

    # Discount factor (gamma) - How much to value future rewards
    GAMMA: float = 0.95

    # Transitions sampled per training update
    BATCH_SIZE: int = 32

    # Replay buffer capacity (oldest transitions evicted first)
    MEMORY_SIZE: int = 2000

    # Backups read from a separate, periodically synced target network.
    # Off: current and next-state values both come from the policy network.
    USE_TARGET_NETWORK: bool = False

    # Gradient updates between target network syncs
    TARGET_UPDATE: int = 1000

    # Force CPU device
    FORCE_CPU: bool = False

    # =========================================================================
    # EXPLORATION SETTINGS (Epsilon-Greedy)
    # =========================================================================

    EPSILON_START: float = 1.0
    EPSILON_END: float = 0.01

    # Applied once per completed training update
    EPSILON_DECAY: float = 0.995

    # =========================================================================
    # VISUALIZATION SETTINGS
    # =========================================================================

    COLOR_BACKGROUND: Tuple[int, int, int] = (0, 0, 0)
    COLOR_PLAYER: Tuple[int, int, int] = (57, 255, 20)
    COLOR_PLAYER_BULLET: Tuple[int, int, int] = (0, 255, 255)
    COLOR_ENEMY_BULLET: Tuple[int, int, int] = (255, 0, 0)
    COLOR_BOSS: Tuple[int, int, int] = (255, 0, 0)
    COLOR_HEALTH_HIGH: Tuple[int, int, int] = (0, 255, 0)
    COLOR_HEALTH_LOW: Tuple[int, int, int] = (255, 0, 0)
    COLOR_HEALTH_BACK: Tuple[int, int, int] = (85, 85, 85)
    COLOR_TEXT: Tuple[int, int, int] = (255, 255, 255)

    # One color per invader row, top to bottom
    COLOR_INVADER_ROWS: List[Tuple[int, int, int]] = field(default_factory=lambda: [
        (255, 0, 255),    # Magenta
        (0, 255, 255),    # Cyan
        (255, 255, 0),    # Yellow
        (255, 128, 0),    # Orange
        (255, 0, 0),      # Red
    ])

    # Cosmetic background stars (renderer only)
    STAR_COUNT: int = 50

    # =========================================================================
    # TRAINING CONTROL
    # =========================================================================

    # Total episodes to train (0 = unlimited, train until manually stopped)
    MAX_EPISODES: int = 0

    # Save model every N episodes (0 = only at the end)
    SAVE_EVERY: int = 100

    # Log stats every N episodes
    LOG_EVERY: int = 10

    # Episodes kept for running averages
    HISTORY_LENGTH: int = 1000

    # =========================================================================
    # SYSTEM SETTINGS
    # =========================================================================

    @property
    def DEVICE(self) -> torch.device:
        """Auto-detect CUDA/MPS/CPU, or force CPU if configured."""
        if self.FORCE_CPU:
            return torch.device('cpu')
        if torch.cuda.is_available():
            return torch.device('cuda')
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return torch.device('mps')
        return torch.device('cpu')

    # Paths
    MODEL_DIR: str = 'models'
    LOG_DIR: str = 'logs'

    @property
    def STORE_DIR(self) -> str:
        """Directory holding named model records (e.g., 'models/store/')."""
        return os.path.join(self.MODEL_DIR, 'store')

    # Logging: 'DEBUG', 'INFO', 'WARNING', 'ERROR'
    LOG_LEVEL: str = 'INFO'
    LOG_TO_FILE: bool = True

    # Random seed for reproducibility (None for random)
    SEED: Optional[int] = None

    def __post_init__(self):
        """Validation and derived calculations."""
        assert self.LEARNING_RATE > 0, "Learning rate must be positive"
        assert 0 < self.GAMMA <= 1, "Gamma must be in (0, 1]"
        assert self.BATCH_SIZE > 0, "Batch size must be positive"
        assert self.MEMORY_SIZE >= self.BATCH_SIZE, "Memory must hold at least one batch"
        assert self.EPSILON_START >= self.EPSILON_END, "Epsilon start must be >= end"
        assert 0 < self.EPSILON_DECAY <= 1, "Epsilon decay must be in (0, 1]"
        assert self.INVADER_ROWS > 0 and self.INVADER_COLS > 0, "Invader grid must not be empty"
        assert self.BOSS_HEALTH > 0, "Boss health must be positive"
        assert self.PLAYER_SHOOT_INTERVAL >= 0, "Shoot interval must be non-negative"

    @property
    def INVADER_OFFSET_LEFT(self) -> int:
        """Left offset that centers the invader grid horizontally."""
        grid_width = self.INVADER_COLS * (self.INVADER_WIDTH + self.INVADER_PADDING)
        return (self.SCREEN_WIDTH - grid_width) // 2


# Global config instance for easy importing
config = Config()


if __name__ == "__main__":
    # Print configuration summary
    cfg = Config()
    print("=" * 60)
    print("Invader DQN - Configuration Summary")
    print("=" * 60)
    print(f"\nScreen: {cfg.SCREEN_WIDTH}x{cfg.SCREEN_HEIGHT}")
    print(f"Invaders: {cfg.INVADER_ROWS}x{cfg.INVADER_COLS} = {cfg.INVADER_ROWS * cfg.INVADER_COLS}")
    print(f"Boss health: {cfg.BOSS_HEALTH}")
    print(f"\nNeural Network:")
    print(f"   Input size: {cfg.STATE_SIZE}")
    print(f"   Hidden layers: {cfg.HIDDEN_LAYERS}")
    print(f"   Output size: {cfg.ACTION_SIZE}")
    print(f"\nTraining:")
    print(f"   Learning rate: {cfg.LEARNING_RATE}")
    print(f"   Batch size: {cfg.BATCH_SIZE}")
    print(f"   Gamma: {cfg.GAMMA}")
    print(f"   Memory: {cfg.MEMORY_SIZE}")
    print(f"\nExploration:")
    print(f"   Epsilon: {cfg.EPSILON_START} -> {cfg.EPSILON_END}")
    print(f"   Decay: {cfg.EPSILON_DECAY}")
    print(f"\nDevice: {cfg.DEVICE}")
    print("=" * 60)
