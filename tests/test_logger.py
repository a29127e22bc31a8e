#!/usr/bin/env python3
"""Test suite for logging configuration"""

import logging

import pytest

from pymlat.logger import (
    ROOT_LOGGER, TRACE, ColoredFormatter, LoggerConfig, setup_logger, setup_logger_from_config
)


@pytest.fixture
def clean_root():
    """Restore the package logger after a test reconfigures it"""
    root = logging.getLogger(ROOT_LOGGER)
    level, handlers = root.level, list(root.handlers)
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _read(logger, path):
    for handler in logger.handlers:
        handler.flush()
    return path.read_text()


class TestSetupLogger:

    def test_trace_level_registered(self):
        assert TRACE < logging.DEBUG
        assert logging.getLevelName(TRACE) == "TRACE"

    def test_file_logging(self, tmp_path):
        log_file = tmp_path / "mlat.log"
        logger = setup_logger("pymlat.test.file", "DEBUG", str(log_file), console=False)
        logger.debug("candidate rejected")
        logger.log(TRACE, "not written")
        text = _read(logger, log_file)
        assert "DEBUG - candidate rejected" in text
        assert "not written" not in text
        assert logger.level == logging.DEBUG

    def test_trace_messages(self, tmp_path):
        log_file = tmp_path / "trace.log"
        logger = setup_logger("pymlat.test.trace", "trace", str(log_file), console=False)
        logger.log(TRACE, "degenerate geometry")
        assert "TRACE - degenerate geometry" in _read(logger, log_file)

    def test_numeric_level(self):
        logger = setup_logger("pymlat.test.numeric", logging.ERROR, console=False)
        assert logger.level == logging.ERROR

    def test_reconfigure_replaces_handlers(self):
        setup_logger("pymlat.test.handlers", "INFO")
        logger = setup_logger("pymlat.test.handlers", "WARNING")
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logger("pymlat.test.bad", "VERBOSE")


class TestColoredFormatter:

    def test_record_left_plain(self):
        record = logging.LogRecord("pymlat", logging.WARNING, __file__, 1, "dropped", None, None)
        text = ColoredFormatter('%(levelname)s %(message)s').format(record)
        assert text == f"{ColoredFormatter.COLORS[logging.WARNING]}WARNING{ColoredFormatter.RESET} dropped"
        assert record.levelname == "WARNING"


class TestLoggerConfig:

    def test_configure_from_dict(self):
        config = LoggerConfig()
        config.configure_from_dict({
            'default_level': 'WARNING',
            'module_levels': {'pymlat.mlat.processor': 'DEBUG'},
        })
        assert config.default_level == 'WARNING'
        assert config.module_levels == {'pymlat.mlat.processor': 'DEBUG'}

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggerConfig().configure_from_dict({'default_level': 'LOUD'})
        with pytest.raises(ValueError):
            LoggerConfig().configure_from_dict({'module_levels': {'pymlat.core': 'LOUD'}})

    def test_setup_from_config(self, clean_root):
        root = setup_logger_from_config({
            'default_level': 'WARNING',
            'console': True,
            'module_levels': {'pymlat.test.config': 'TRACE'},
        })
        assert root is clean_root
        assert clean_root.level == logging.WARNING
        assert logging.getLogger("pymlat.test.config").level == TRACE
        assert all(handler.level == TRACE for handler in clean_root.handlers)
