"""
Tests for the logging helpers.
"""

import logging
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from invader_dqn.utils.logger import (
    LogLevel, get_log_path, get_logger, log_model_event, log_training_metrics, setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    setup_logging(force=True)


class TestLogLevel:

    def test_from_name(self):
        assert LogLevel.from_name('debug') is LogLevel.DEBUG
        assert LogLevel.from_name('WARNING') is LogLevel.WARNING

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            LogLevel.from_name('chatty')


class TestLoggers:
    """Test logger naming and output."""

    def test_namespace_prefix(self):
        assert get_logger('training').name == 'invader_dqn.training'
        assert get_logger('invader_dqn.ai.agent').name == 'invader_dqn.ai.agent'

    def test_file_output(self, tmp_path):
        setup_logging(log_dir=str(tmp_path), console_output=False, file_output=True,
                      log_filename='run.log', force=True)
        get_logger('test').info("hello file")

        path = get_log_path()
        assert path == tmp_path / 'run.log'
        logging.getLogger('invader_dqn').handlers[0].flush()
        assert "hello file" in path.read_text(encoding='utf-8')

    def test_file_records_debug_below_console_level(self, tmp_path):
        setup_logging(log_dir=str(tmp_path), level=LogLevel.WARNING, file_output=True,
                      log_filename='quiet.log', force=True)
        get_logger('test').debug("detail for the file")

        for handler in logging.getLogger('invader_dqn').handlers:
            handler.flush()
        assert "detail for the file" in get_log_path().read_text(encoding='utf-8')

    def test_force_replaces_handlers(self, tmp_path):
        setup_logging(log_dir=str(tmp_path), file_output=True, log_filename='a.log', force=True)
        setup_logging(force=True)
        assert len(logging.getLogger('invader_dqn').handlers) == 1
        assert get_log_path() is None

    def test_no_file_by_default(self):
        setup_logging(force=True)
        assert get_log_path() is None

    def test_training_metrics_format(self, caplog):
        with caplog.at_level(logging.INFO, logger='invader_dqn'):
            log_training_metrics(episode=10, score=120, epsilon=0.5, loss=0.25, steps=300)
        assert "ep=10 | score=120 | eps=0.5000 | loss=0.250000 | steps=300" in caplog.text

    def test_model_event(self, caplog):
        with caplog.at_level(logging.INFO, logger='invader_dqn'):
            log_model_event('save', 'models/a.pth', episode=3)
        assert "SAVE | models/a.pth | episode=3" in caplog.text
