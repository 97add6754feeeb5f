"""
Training Loop
=============

Orchestrates play and learning over one environment and one agent.

Modes:
    IDLE        - Nothing advances
    INTERACTIVE - Each tick advances the engine with live keyboard intent
    TRAINING    - Each tick runs one cycle: reset / act / step / remember,
                  then submits a learning update to a single worker thread

Only one learning update is ever in flight. While it is pending, training
ticks return without doing anything; the next cycle runs once the update's
future has resolved. Leaving training mode stops further cycles but lets a
running update finish, so its epsilon decay still applies.
"""

import os
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import numpy as np

from config import Config
from ..game.entities import InputIntent
from ..game.environment import InvaderEnv
from ..utils.logger import get_logger, log_model_event, log_training_metrics
from .agent import Agent
from .persistence import ModelStore

logger = get_logger(__name__)


class RunMode(Enum):
    """What a tick does."""
    IDLE = 'idle'
    INTERACTIVE = 'interactive'
    TRAINING = 'training'


@dataclass
class EpisodeStats:
    """Statistics for a single training episode."""
    episode: int
    score: int
    steps: int
    total_reward: float
    epsilon: float
    avg_loss: float
    duration: float
    wave: int


class TrainingMetrics:
    """
    Tracks training metrics over time.

    Metrics tracked:
        - Episode scores
        - Total rewards
        - Steps per episode
        - Loss values
        - Epsilon values
        - Episode durations
        - Waves reached
    """

    FIELDS = ('scores', 'rewards', 'steps', 'losses', 'epsilons', 'durations', 'waves')

    def __init__(self, history_length: int = 1000):
        self.history_length = history_length

        self.scores: List[int] = []
        self.rewards: List[float] = []
        self.steps: List[int] = []
        self.losses: List[float] = []
        self.epsilons: List[float] = []
        self.durations: List[float] = []
        self.waves: List[int] = []
        self.best_score = 0
        self.episodes = 0

    def add(self, stats: EpisodeStats) -> None:
        """Add episode statistics."""
        self.scores.append(stats.score)
        self.rewards.append(stats.total_reward)
        self.steps.append(stats.steps)
        self.losses.append(stats.avg_loss)
        self.epsilons.append(stats.epsilon)
        self.durations.append(stats.duration)
        self.waves.append(stats.wave)
        self.best_score = max(self.best_score, stats.score)
        self.episodes += 1

        if len(self.scores) > self.history_length:
            for attr in self.FIELDS:
                setattr(self, attr, getattr(self, attr)[-self.history_length:])

    def get_recent_average(self, metric: str, n: int = 100) -> float:
        """Get average of last n values for a metric."""
        values = getattr(self, metric, [])
        if not values:
            return 0.0
        return float(np.mean(values[-n:]))

    def get_best_score(self) -> int:
        """Highest score seen, including episodes trimmed from history."""
        return self.best_score


class Trainer:
    """
    Drives the environment and the agent tick by tick.

    Example:
        >>> env = InvaderEnv(config)
        >>> agent = Agent(env.state_size, env.action_size, config)
        >>> trainer = Trainer(env, agent, config)
        >>> trainer.run(max_episodes=50)
        >>> trainer.shutdown()
    """

    def __init__(
        self,
        env: InvaderEnv,
        agent: Agent,
        config: Optional[Config] = None,
        store: Optional[ModelStore] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        episode_callback: Optional[Callable[[EpisodeStats], None]] = None
    ):
        """
        Args:
            env: Environment to play
            agent: Learner that selects actions and trains
            config: Configuration object
            store: Optional model store for periodic blob saves
            executor: Worker for learning updates (a private single-thread pool if omitted)
            episode_callback: Called with the stats of every finished training episode
        """
        self.env = env
        self.agent = agent
        self.config = config or Config()
        self.store = store
        self.episode_callback = episode_callback

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix='invader-dqn-update'
        )
        self._pending: Optional[Future] = None

        self.mode = RunMode.IDLE
        self.metrics = TrainingMetrics(self.config.HISTORY_LENGTH)
        self.current_episode = 0
        self.total_steps = 0
        self.last_loss: Optional[float] = None
        self.last_reward = 0.0
        self.last_stats: Optional[EpisodeStats] = None
        self._training_start = time.time()

        self._clear_mode_flags()

    # =========================================================================
    # MODES
    # =========================================================================

    def _clear_mode_flags(self) -> None:
        # Interactive: fire must be released before it can start a new game
        self._fire_held = False
        # Training: per-episode accumulators
        self._episode_active = False
        self._episode_reward = 0.0
        self._episode_steps = 0
        self._episode_start = time.time()

    def set_mode(self, mode: RunMode) -> None:
        """Switch modes. A learning update already in flight is allowed to finish."""
        if mode == self.mode:
            return
        logger.info("Mode %s -> %s", self.mode.value, mode.value)
        self.mode = mode
        self._clear_mode_flags()

    def toggle_training(self) -> RunMode:
        """Flip between training and interactive play."""
        self.set_mode(RunMode.INTERACTIVE if self.mode == RunMode.TRAINING else RunMode.TRAINING)
        return self.mode

    @property
    def update_pending(self) -> bool:
        """True while a learning update has been submitted and not collected."""
        return self._pending is not None

    # =========================================================================
    # TICKS
    # =========================================================================

    def tick(self, intent: Optional[InputIntent] = None) -> bool:
        """
        Advance according to the current mode.

        Returns:
            True if the tick did work, False if it was skipped
        """
        if self.mode == RunMode.INTERACTIVE:
            return self._interactive_tick(intent or InputIntent())
        if self.mode == RunMode.TRAINING:
            return self._training_tick()
        return False

    def _interactive_tick(self, intent: InputIntent) -> bool:
        if not self.env.is_started or self.env.is_terminal:
            pressed = intent.fire and not self._fire_held
            self._fire_held = intent.fire
            if pressed:
                self.env.reset()
                logger.info("Interactive game started")
            return pressed

        self._fire_held = intent.fire
        self.env.engine.advance(intent)
        return True

    def _training_tick(self) -> bool:
        if self._pending is not None:
            if not self._pending.done():
                return False
            self._collect_update()

        if not self.env.is_started or self.env.is_terminal:
            self.env.reset()
            self._begin_episode()
            return True

        if not self._episode_active:
            self._begin_episode()

        state = self.env.observe()
        action = self.agent.select_action(state, training=True)
        next_state, reward, done = self.env.step(action)
        self.agent.remember(state, action, reward, next_state, done)

        self.total_steps += 1
        self._episode_steps += 1
        self._episode_reward += reward
        self.last_reward = reward

        if done:
            self._finish_episode()

        self._pending = self._executor.submit(self.agent.train_step, self.config.BATCH_SIZE)
        return True

    def _collect_update(self) -> None:
        """Take the pending update's result. Errors raised by the update surface here."""
        future, self._pending = self._pending, None
        if future is None:
            return
        loss = future.result()
        if loss is not None:
            self.last_loss = loss

    def wait(self) -> None:
        """Block until the in-flight update (if any) finishes and collect it."""
        if self._pending is not None:
            self._pending.result()
            self._collect_update()

    # =========================================================================
    # EPISODES
    # =========================================================================

    def _begin_episode(self) -> None:
        self._episode_active = True
        self._episode_reward = 0.0
        self._episode_steps = 0
        self._episode_start = time.time()

    def _finish_episode(self) -> None:
        self.current_episode += 1
        self._episode_active = False
        info = self.env.get_info()

        stats = EpisodeStats(
            episode=self.current_episode,
            score=info['score'],
            steps=self._episode_steps,
            total_reward=self._episode_reward,
            epsilon=self.agent.epsilon,
            avg_loss=self.agent.get_average_loss(100),
            duration=time.time() - self._episode_start,
            wave=info['wave'],
        )
        self.metrics.add(stats)
        self.last_stats = stats

        if self.config.LOG_EVERY and stats.episode % self.config.LOG_EVERY == 0:
            log_training_metrics(
                episode=stats.episode,
                score=stats.score,
                epsilon=stats.epsilon,
                reward=stats.total_reward,
                loss=stats.avg_loss,
                steps=stats.steps,
                avg_score=self.metrics.get_recent_average('scores', 100),
            )

        if self.config.SAVE_EVERY and stats.episode % self.config.SAVE_EVERY == 0:
            self.save_checkpoint('periodic')

        if self.episode_callback is not None:
            self.episode_callback(stats)

    def save_checkpoint(self, reason: str = 'manual', filepath: Optional[str] = None) -> str:
        """
        Write a resumable checkpoint, plus a store record when a store is attached.

        Must not be called while an update is in flight.
        """
        if self._pending is not None:
            raise RuntimeError("Cannot save while a learning update is in flight; call wait() first")

        filepath = filepath or os.path.join(
            self.config.MODEL_DIR, f'invaders_ep{self.current_episode}.pth'
        )
        self.agent.save(
            filepath,
            save_reason=reason,
            episode=self.current_episode,
            best_score=self.metrics.get_best_score(),
            avg_score_last_100=self.metrics.get_recent_average('scores', 100),
            training_start_time=self._training_start,
        )
        if self.store is not None:
            record = self.store.save(
                self.agent.export_blob(), name=f'invaders-ep{self.current_episode}'
            )
            log_model_event('store', record.name, episode=self.current_episode)
        return filepath

    # =========================================================================
    # HEADLESS DRIVER
    # =========================================================================

    def run(self, max_episodes: Optional[int], save_path: Optional[str] = None) -> TrainingMetrics:
        """
        Train until max_episodes more episodes have finished.

        Args:
            max_episodes: Number of episodes to complete (None trains until interrupted)
            save_path: Where to write the final checkpoint (none if omitted)

        Returns:
            Training metrics
        """
        if max_episodes is not None and max_episodes <= 0:
            raise ValueError("max_episodes must be positive")

        target = None if max_episodes is None else self.current_episode + max_episodes
        logger.info(
            "Training for %s episodes | device=%s | state=%d | actions=%d",
            max_episodes or 'unlimited', self.agent.device, self.env.state_size, self.env.action_size,
        )

        self.set_mode(RunMode.TRAINING)
        try:
            while target is None or self.current_episode < target:
                self.tick()
                self.wait()
        except KeyboardInterrupt:
            logger.warning("Training interrupted at episode %d", self.current_episode)
            self.wait()
            if save_path:
                self.save_checkpoint('interrupted', save_path)
            raise
        finally:
            self.set_mode(RunMode.IDLE)

        if save_path:
            self.save_checkpoint('final', save_path)

        logger.info(
            "Training complete | best=%d | avg(100)=%.1f | eps=%.4f | steps=%d",
            self.metrics.get_best_score(),
            self.metrics.get_recent_average('scores', 100),
            self.agent.epsilon,
            self.total_steps,
        )
        return self.metrics

    def shutdown(self) -> None:
        """Let the in-flight update finish, then stop the worker."""
        self.wait()
        if self._owns_executor:
            self._executor.shutdown(wait=True)
