#!/usr/bin/env python3
"""
Invader DQN - Main Entry Point
==============================

Play the invader game yourself, or watch a DQN agent learn to play it.

Usage:
    # Interactive play with live training toggle (default)
    python main.py

    # Start straight into visual training
    python main.py --train

    # Train without visualization (faster)
    python main.py --headless --episodes 500 --save models/invaders.pth

    # Watch a trained model play greedily
    python main.py --play --load-latest

    # Store management
    python main.py --list-models

Press:
    - SPACE: Fire / start a new game
    - LEFT/RIGHT or A/D: Move
    - T: Toggle training mode
    - S: Save the current model to the model store
    - L: Load the latest model from the model store
    - +/-: Training ticks per frame
    - ESC or Q: Quit
"""

# Suppress pygame's pkg_resources deprecation warning (pygame issue #4557)
import warnings
warnings.filterwarnings("ignore", category=UserWarning, module="pygame.pkgdata")

import argparse
import os
import random
import sys
from typing import List, Optional

import numpy as np
import pygame
import torch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import Config
from invader_dqn.ai import Agent, ModelLoadError, ModelStore, RunMode, Trainer
from invader_dqn.game import InvaderEnv
from invader_dqn.utils import LogLevel, get_log_path, get_logger, setup_logging
from invader_dqn.visualizer import Renderer, intent_from_keys

logger = get_logger('main')

MAX_TICKS_PER_FRAME = 64


def load_initial_model(agent: Agent, store: ModelStore, args: argparse.Namespace) -> bool:
    """
    Restore weights requested on the command line.

    A checkpoint or blob that cannot be used is reported and training
    starts fresh.

    Returns:
        True if a model was loaded
    """
    try:
        if args.model:
            agent.load(args.model)
            return True
        if args.load_name:
            agent.import_blob(store.load_named(args.load_name))
            return True
        if args.load_latest:
            agent.import_blob(store.load_latest())
            return True
    except (FileNotFoundError, ModelLoadError) as e:
        logger.error("Could not load model: %s. Starting fresh.", e)
    return False


class GameApp:
    """
    Windowed application: interactive play, visual training and greedy play.

    One Trainer owns the tick logic; this class only pumps pygame events,
    feeds keyboard intent into the trainer and draws snapshots.
    """

    def __init__(self, config: Config, args: argparse.Namespace):
        self.config = config
        self.args = args

        pygame.init()
        self.screen = pygame.display.set_mode((config.SCREEN_WIDTH, config.SCREEN_HEIGHT))
        pygame.display.set_caption("Invader DQN")
        self.clock = pygame.time.Clock()

        self.env = InvaderEnv(config, seed=config.SEED)
        self.agent = Agent(self.env.state_size, self.env.action_size, config)
        self.store = ModelStore(args.store_dir or config.STORE_DIR)
        self.trainer = Trainer(self.env, self.agent, config, store=self.store)
        self.renderer = Renderer(config, seed=config.SEED)

        self.running = True
        self.ticks_per_frame = 1

        load_initial_model(self.agent, self.store, args)

    def run(self) -> None:
        """Interactive play, with T switching to live training and back."""
        self.trainer.set_mode(RunMode.TRAINING if self.args.train else RunMode.INTERACTIVE)
        logger.info("Controls: arrows/A-D move, SPACE fire, T train, S save, L load, Q quit")

        while self.running:
            self._handle_events()

            if self.trainer.mode == RunMode.TRAINING:
                for i in range(self.ticks_per_frame):
                    if i:
                        self.trainer.wait()
                    self.trainer.tick()
            else:
                self.trainer.tick(intent_from_keys(pygame.key.get_pressed()))

            self._render_frame()
            self.clock.tick(self.config.FPS)

        self.close()

    def run_play_mode(self) -> None:
        """Watch the agent play greedily without training."""
        logger.info("Play mode: greedy policy, no training")
        state = self.env.reset()

        while self.running:
            self._handle_events()

            if self.env.is_terminal:
                logger.info("Episode complete | score=%d | wave=%d",
                            self.env.state.score, self.env.state.wave)
                state = self.env.reset()
            else:
                action = self.agent.select_action(state, training=False)
                state, _, _ = self.env.step(action)

            self._render_frame()
            self.clock.tick(self.config.FPS)

        self.close()

    def _handle_events(self) -> None:
        """Handle pygame events and keyboard commands."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_ESCAPE, pygame.K_q):
                    self.running = False

                elif event.key == pygame.K_t and not self.args.play:
                    mode = self.trainer.toggle_training()
                    logger.info("Training %s", "ON" if mode == RunMode.TRAINING else "OFF")

                elif event.key == pygame.K_s:
                    self._save_model()

                elif event.key == pygame.K_l:
                    self._load_latest()

                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS):
                    self.ticks_per_frame = min(MAX_TICKS_PER_FRAME, self.ticks_per_frame * 2)
                    logger.info("Ticks per frame: %d", self.ticks_per_frame)

                elif event.key == pygame.K_MINUS:
                    self.ticks_per_frame = max(1, self.ticks_per_frame // 2)
                    logger.info("Ticks per frame: %d", self.ticks_per_frame)

    def _status_lines(self) -> List[str]:
        if self.args.play:
            return ["PLAY (greedy)"]
        if self.trainer.mode != RunMode.TRAINING:
            return []

        loss = self.trainer.last_loss
        return [
            f"TRAINING  x{self.ticks_per_frame}",
            f"Episode: {self.trainer.current_episode:,}  Best: {self.trainer.metrics.get_best_score()}",
            f"Epsilon: {self.agent.epsilon:.3f}  Loss: {loss:.4f}" if loss is not None
            else f"Epsilon: {self.agent.epsilon:.3f}",
            f"Reward: {self.trainer.last_reward:+.1f}",
        ]

    def _render_frame(self) -> None:
        self.renderer.draw(self.screen, self.env.snapshot(), self._status_lines())
        pygame.display.flip()

    def _save_model(self) -> None:
        self.trainer.wait()
        record = self.store.save(self.agent.export_blob(), name=self.args.model_name)
        logger.info("Saved '%s'", record.name)

    def _load_latest(self) -> None:
        self.trainer.wait()
        try:
            self.agent.import_blob(self.store.load_latest())
        except ModelLoadError as e:
            logger.error("Load failed: %s", e)

    def close(self) -> None:
        self.trainer.shutdown()
        pygame.quit()


def run_headless(config: Config, args: argparse.Namespace) -> None:
    """Train without a window."""
    env = InvaderEnv(config, seed=config.SEED)
    agent = Agent(env.state_size, env.action_size, config)
    store = ModelStore(args.store_dir or config.STORE_DIR)
    trainer = Trainer(env, agent, config, store=store)

    load_initial_model(agent, store, args)

    episodes = args.episodes if args.episodes is not None else (config.MAX_EPISODES or None)
    try:
        trainer.run(episodes, save_path=args.save)
    except KeyboardInterrupt:
        logger.warning("Training interrupted by user")
    finally:
        trainer.shutdown()

    record = store.save(agent.export_blob(), name=args.model_name)
    logger.info("Final model stored as '%s'", record.name)


def list_models(store_dir: str) -> None:
    """Print the model store's records, newest first."""
    records = ModelStore(store_dir).list_models()
    if not records:
        print(f"\nNo models found in '{store_dir}/'")
        return

    print("\n" + "=" * 80)
    print(f"Saved Models in '{store_dir}/' ({len(records)} records)")
    print("=" * 80)
    print(f"{'Name':<45} {'Created':<33}")
    print("-" * 80)
    for record in records:
        name = record.name[:43] + '..' if len(record.name) > 45 else record.name
        print(f"{name:<45} {record.created_at:<33}")
    print("=" * 80)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Invader DQN - play an invader shooter or train a DQN agent to play it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES
========

    python main.py                          Play; press T to start training
    python main.py --train                  Visual training from the start
    python main.py --headless --episodes 500 --save models/invaders.pth
    python main.py --play --load-latest     Watch the newest stored model
    python main.py --list-models            Show stored models
        """
    )

    # Mode selection
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        '--train', action='store_true',
        help='Start the window in training mode'
    )
    mode_group.add_argument(
        '--play', action='store_true',
        help='Play mode: watch the agent play greedily without training'
    )
    mode_group.add_argument(
        '--headless', action='store_true',
        help='Headless training: no window (faster)'
    )
    mode_group.add_argument(
        '--list-models', action='store_true',
        help='List the records in the model store'
    )

    # Model options
    parser.add_argument(
        '--model', type=str, default=None,
        help='Checkpoint (.pth) to resume from'
    )
    parser.add_argument(
        '--save', type=str, default=None,
        help='Checkpoint path written when headless training ends'
    )
    parser.add_argument(
        '--store-dir', type=str, default=None,
        help='Model store directory (default: <MODEL_DIR>/store)'
    )
    parser.add_argument(
        '--model-name', type=str, default=None,
        help='Name for records saved to the model store (default: timestamped)'
    )
    load_group = parser.add_mutually_exclusive_group()
    load_group.add_argument(
        '--load-latest', action='store_true',
        help='Start from the newest model in the store'
    )
    load_group.add_argument(
        '--load-name', type=str, default=None,
        help='Start from the newest store record with this name'
    )

    # Training parameters
    parser.add_argument(
        '--episodes', type=int, default=None,
        help='Number of headless training episodes (default: unlimited, trains until stopped)'
    )
    parser.add_argument(
        '--lr', type=float, default=None,
        help='Learning rate'
    )
    parser.add_argument(
        '--target-network', action='store_true',
        help='Bootstrap from a periodically synced target network'
    )
    parser.add_argument(
        '--cpu', action='store_true',
        help='Force CPU'
    )

    # Other options
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for reproducibility'
    )
    parser.add_argument(
        '--log-level', type=str, default=None,
        choices=[level.name for level in LogLevel],
        help='Console log level (default: from config)'
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Config with command line overrides applied."""
    config = Config()
    if args.lr is not None:
        config.LEARNING_RATE = args.lr
    if args.target_network:
        config.USE_TARGET_NETWORK = True
    if args.cpu:
        config.FORCE_CPU = True
    if args.seed is not None:
        config.SEED = args.seed
    if args.log_level:
        config.LOG_LEVEL = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    setup_logging(
        log_dir=config.LOG_DIR,
        level=LogLevel.from_name(config.LOG_LEVEL),
        file_output=config.LOG_TO_FILE and not args.list_models,
        force=True,
    )
    log_path = get_log_path()
    if log_path is not None:
        logger.info("Logging to %s", log_path)

    if args.list_models:
        list_models(args.store_dir or config.STORE_DIR)
        return

    if config.SEED is not None:
        random.seed(config.SEED)
        np.random.seed(config.SEED)
        torch.manual_seed(config.SEED)

    if args.headless:
        run_headless(config, args)
        return

    app = GameApp(config, args)
    try:
        if args.play:
            app.run_play_mode()
        else:
            app.run()
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        app.close()


if __name__ == "__main__":
    main()
