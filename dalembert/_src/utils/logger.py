# SPDX-FileCopyrightText: Copyright (c) 2025 The Newton Developers
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
dalembert: Utilities: Message Logging
"""

import logging
from enum import IntEnum
from typing import ClassVar

###
# Module interface
###

__all__ = [
    "LogLevel",
    "Logger",
    "critical",
    "debug",
    "error",
    "get_default_logger",
    "info",
    "notif",
    "reset_log_level",
    "set_log_header",
    "set_log_level",
    "warning",
]


###
# Types
###


class LogLevel(IntEnum):
    """Enumeration for log levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    NOTIF = logging.INFO + 5
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class Logger(logging.Formatter):
    """Formatter owning the package stream handler, with a colored header per log level."""

    NAME = "dalembert"
    HEADER = "[DALEMBERT]"
    HEADERCOL = "\x1b[38;5;39m"

    WHITE = "\x1b[37m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    BLUE = "\x1b[34;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RESET = "\x1b[0m"

    LINE_FORMAT = "[%(asctime)s][%(filename)s:%(lineno)d][%(levelname)s]: %(message)s"
    """Line format of every record: timestamp, source location, level and message."""

    COLORS: ClassVar[dict[int, str]] = {
        LogLevel.DEBUG: BLUE,
        LogLevel.INFO: WHITE,
        LogLevel.NOTIF: GREEN,
        LogLevel.WARNING: YELLOW,
        LogLevel.ERROR: RED,
        LogLevel.CRITICAL: BOLD_RED,
    }
    """Maps each log level to the color of its message line."""

    def __init__(self):
        super().__init__()
        logging.addLevelName(LogLevel.NOTIF, "NOTIF")

        # Attach a single stream handler to the package logger
        self._streamhandler = logging.StreamHandler()
        self._streamhandler.setFormatter(self)
        log = self.get()
        for handler in list(log.handlers):
            log.removeHandler(handler)
        log.addHandler(self._streamhandler)
        log.setLevel(LogLevel.NOTIF)
        log.propagate = False

    def format(self, record):
        color = self.COLORS.get(record.levelno, self.WHITE)
        formatter = logging.Formatter(self.HEADERCOL + self.HEADER + self.RESET + color + self.LINE_FORMAT + self.RESET)
        return formatter.format(record)

    def get(self) -> logging.Logger:
        """Returns the package logger."""
        return logging.getLogger(self.NAME)

    def notif(self, msg, *args, **kwargs):
        """
        Log 'msg % args' with severity 'NOTIF'.

        To pass exception information, use the keyword argument exc_info with
        a true value, e.g.

        logger.notif("Constraint set %s is %s", name, "bound", exc_info=1)
        """
        self.get().log(LogLevel.NOTIF, msg, *args, **kwargs)


###
# Globals
###


LOGGER: Logger | None = None
"""Global logger instance for the package."""


###
# Configurations
###


def get_default_logger() -> logging.Logger:
    """Initializes the global logger instance on first use and returns the package logger."""
    global LOGGER  # noqa: PLW0603
    if LOGGER is None:
        LOGGER = Logger()
    return LOGGER.get()


def set_log_level(level: LogLevel):
    """Set the logging level for the default logger."""
    get_default_logger().setLevel(level)
    get_default_logger().debug(f"Log level set to: {logging.getLevelName(level)}")


def reset_log_level():
    """Reset the logging level for the default logger to NOTIF."""
    get_default_logger().setLevel(LogLevel.NOTIF)
    get_default_logger().debug(f"Log level reset to: {logging.getLevelName(LogLevel.NOTIF)}")


def set_log_header(header: str):
    """Set the header printed in front of every record."""
    Logger.HEADER = header


###
# Logging
###


def debug(msg: str, *args, **kwargs):
    """Log a debug message."""
    get_default_logger().debug(msg, *args, **kwargs, stacklevel=2)


def info(msg: str, *args, **kwargs):
    """Log an info message."""
    get_default_logger().info(msg, *args, **kwargs, stacklevel=2)


def notif(msg: str, *args, **kwargs):
    """Log a notification message."""
    get_default_logger().log(LogLevel.NOTIF, msg, *args, **kwargs, stacklevel=2)


def warning(msg: str, *args, **kwargs):
    """Log a warning message."""
    get_default_logger().warning(msg, *args, **kwargs, stacklevel=2)


def error(msg: str, *args, **kwargs):
    """Log an error message."""
    get_default_logger().error(msg, *args, **kwargs, stacklevel=2)


def critical(msg: str, *args, **kwargs):
    """Log a critical message."""
    get_default_logger().critical(msg, *args, **kwargs, stacklevel=2)
