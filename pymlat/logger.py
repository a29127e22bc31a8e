# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging configuration for multilateration processing

Per-combination diagnostics are logged at TRACE, one level below DEBUG.
"""

import logging
import sys
from typing import Optional, Union

ROOT_LOGGER = "pymlat"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVELS = {
    'TRACE': TRACE,
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}

CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(process)d - %(name)s - %(levelname)s - %(message)s'


def _level(level: Union[str, int]) -> int:
    """Numeric level of a level name or number"""
    if isinstance(level, int):
        return level
    try:
        return LEVELS[level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


class ColoredFormatter(logging.Formatter):
    """Console formatter coloring the level name by severity"""

    COLORS = {
        TRACE: '\033[36m',             # Cyan
        logging.DEBUG: '\033[34m',     # Blue
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        # Other handlers of the same record must see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logger(name: str = ROOT_LOGGER,
                 level: Union[str, int] = "INFO",
                 log_file: Optional[str] = None,
                 console: bool = True) -> logging.Logger:
    """
    Attach console and/or file handlers to a logger

    Existing handlers of the logger are closed and replaced, so the
    function can be called again to reconfigure.

    Parameters
    ----------
    name : str
        Logger name, the package root by default
    level : str or int
        Log level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_file : str, optional
        Append records to this file; worker processes are told apart by
        the process id in each line
    console : bool
        Write colored records to stdout

    Returns
    -------
    logging.Logger
        Configured logger
    """
    numeric_level = _level(level)
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)
    return logger


class LoggerConfig:
    """Package log level plus overrides for single modules

    Module loggers such as ``pymlat.mlat.trilateration`` have no handlers of
    their own; their records propagate to the package logger.
    """

    def __init__(self):
        self.default_level = "INFO"
        self.module_levels = {}
        self.log_file = None
        self.console = True

    def configure_from_dict(self, config: dict):
        """Update settings from a dictionary, validating every level"""
        if 'default_level' in config:
            _level(config['default_level'])
            self.default_level = config['default_level']
        if 'log_file' in config:
            self.log_file = config['log_file']
        if 'console' in config:
            self.console = config['console']
        for module, level in config.get('module_levels', {}).items():
            _level(level)
            self.module_levels[module] = level

    def setup_all_loggers(self) -> logging.Logger:
        """Apply the settings to the package logger and the module loggers"""
        root = setup_logger(ROOT_LOGGER, self.default_level, self.log_file, self.console)
        for module, level in self.module_levels.items():
            logging.getLogger(module).setLevel(_level(level))

        # Root handlers must pass the most verbose module override
        threshold = min([_level(self.default_level)]
                        + [_level(level) for level in self.module_levels.values()])
        for handler in root.handlers:
            handler.setLevel(threshold)
        return root


# Global logger configuration
logger_config = LoggerConfig()


def setup_logger_from_config(config: dict) -> logging.Logger:
    """Setup loggers from configuration dictionary

    Example config:
    {
        'default_level': 'INFO',
        'log_file': 'mlat.log',
        'console': True,
        'module_levels': {
            'pymlat.mlat.trilateration': 'TRACE',
            'pymlat.mlat.processor': 'DEBUG'
        }
    }
    """
    logger_config.configure_from_dict(config)
    return logger_config.setup_all_loggers()
