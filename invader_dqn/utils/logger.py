"""
Logging for the invader simulation and its learner.

Every module logs under the 'invader_dqn' namespace:

    from invader_dqn.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Training started")

The CLI calls setup_logging() once with Config.LOG_LEVEL; Config.LOG_TO_FILE
adds a timestamped file under Config.LOG_DIR. Modules that log before that
get a plain INFO console handler.
"""

import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


ROOT_NAMESPACE = 'invader_dqn'
LINE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


class LogLevel(Enum):
    """Levels selectable from Config.LOG_LEVEL and --log-level."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR

    @classmethod
    def from_name(cls, name: str) -> 'LogLevel':
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {name!r}") from None


class ColoredFormatter(logging.Formatter):
    """Console formatter that tints the level name when stdout is a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str = LINE_FORMAT):
        super().__init__(fmt)
        self.enabled = sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.enabled or color is None:
            return super().format(record)
        # Tint a copy; the file handler must see the plain level name
        tinted = logging.makeLogRecord(record.__dict__)
        tinted.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(tinted)


class _LoggingState:
    configured = False
    file_handler: Optional[logging.FileHandler] = None


def setup_logging(
    log_dir: str = 'logs',
    level: LogLevel = LogLevel.INFO,
    console_output: bool = True,
    file_output: bool = False,
    log_filename: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Configure the 'invader_dqn' logger.

    Args:
        log_dir: Directory for the log file
        level: Minimum level for the console
        console_output: Attach a colored stdout handler
        file_output: Attach a file handler that records everything from DEBUG up
        log_filename: File name (default: invaders_YYYYMMDD_HHMMSS.log)
        force: Replace an existing configuration
    """
    if _LoggingState.configured and not force:
        return

    root = logging.getLogger(ROOT_NAMESPACE)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    _LoggingState.file_handler = None

    if console_output:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level.value)
        console.setFormatter(ColoredFormatter())
        root.addHandler(console)

    if file_output:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        filename = log_filename or f"invaders_{datetime.now():%Y%m%d_%H%M%S}.log"
        file_handler = logging.FileHandler(directory / filename, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LINE_FORMAT))
        root.addHandler(file_handler)
        _LoggingState.file_handler = file_handler

    root.setLevel(logging.DEBUG if file_output else level.value)
    _LoggingState.configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, placed under the 'invader_dqn' namespace."""
    if not _LoggingState.configured:
        setup_logging()

    if name == ROOT_NAMESPACE or name.startswith(ROOT_NAMESPACE + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f'{ROOT_NAMESPACE}.{name}')


def get_log_path() -> Optional[Path]:
    """Path of the active log file, or None when logging to console only."""
    handler = _LoggingState.file_handler
    return Path(handler.baseFilename) if handler is not None else None


def log_training_metrics(
    episode: int,
    score: float,
    epsilon: float,
    reward: Optional[float] = None,
    loss: Optional[float] = None,
    steps: Optional[int] = None,
    avg_score: Optional[float] = None,
) -> None:
    """
    One line per reported episode, e.g.
    ``ep=10 | score=120 | eps=0.9511 | reward=-38.4 | avg=85.0 | loss=0.012345 | steps=300``.
    Optional fields are left out when None.
    """
    fields = [f"ep={episode}", f"score={score:.0f}", f"eps={epsilon:.4f}"]
    optional = (
        ('reward', reward, '.1f'),
        ('avg', avg_score, '.1f'),
        ('loss', loss, '.6f'),
        ('steps', steps, 'd'),
    )
    fields.extend(f"{key}={value:{spec}}" for key, value, spec in optional if value is not None)
    get_logger('training').info(" | ".join(fields))


def log_model_event(event: str, path: str, **context) -> None:
    """Log a model event ('save', 'load', 'import', 'store') with key=value context."""
    parts = [event.upper(), str(path)]
    parts.extend(f"{key}={value}" for key, value in context.items())
    get_logger('model').info(" | ".join(parts))
