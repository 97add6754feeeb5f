"""Utility helpers (logging)."""

from .logger import get_logger, get_log_path, setup_logging, LogLevel, log_training_metrics, log_model_event

__all__ = ['get_logger', 'get_log_path', 'setup_logging', 'LogLevel', 'log_training_metrics', 'log_model_event']
