# remote_explorer/utils/logger.py
"""
Logging utilities for the remote explorer.

Every component obtains its logger through ``get_logger`` so that console
and file output share one configuration, adjustable at runtime from the
settings layer.
"""

import logging
import logging.handlers
import os
import sys
import threading
from pathlib import Path
from typing import Dict, Optional


class LogLevel:
    """Log levels for the explorer (lightweight enum alternative)."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
    "CRITICAL": LogLevel.CRITICAL,
}


class LoggerConfig:
    """
    Configuration for the logging system.

    The log directory is only created once file logging is switched on.
    """

    def __init__(self):
        self._log_dir: Optional[Path] = None
        self.max_file_size = 5 * 1024 * 1024  # 5MB
        self.backup_count = 3
        self.log_to_file = False
        self.console_level = LogLevel.WARNING
        self.file_level = LogLevel.DEBUG
        self.error_file_level = LogLevel.ERROR

    @property
    def log_dir(self) -> Path:
        if self._log_dir is None:
            if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
                base = Path(xdg_config)
            else:
                base = Path.home() / ".config"
            self._log_dir = base / "remote-explorer" / "logs"
            self._log_dir.mkdir(parents=True, exist_ok=True)
        return self._log_dir

    @log_dir.setter
    def log_dir(self, value: Path):
        self._log_dir = Path(value)

    @property
    def main_log_file(self) -> Path:
        return self.log_dir / "remote_explorer.log"

    @property
    def error_log_file(self) -> Path:
        return self.log_dir / "remote_explorer_errors.log"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name without breaking alignment."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }
    LEVEL_WIDTH = 8

    def format(self, record):
        original_levelname = record.levelname
        padding = " " * max(0, self.LEVEL_WIDTH - len(original_levelname))
        color = self.COLORS.get(original_levelname)
        if color:
            record.levelname = (
                f"{color}{original_levelname}{self.COLORS['RESET']}{padding}"
            )
        else:
            record.levelname = f"{original_levelname}{padding}"
        try:
            return super().format(record)
        finally:
            # Other handlers in the chain expect the plain level name.
            record.levelname = original_levelname


class ThreadSafeLogger:
    """Logger wrapper whose handler set can be rebuilt at runtime."""

    def __init__(self, name: str, config: LoggerConfig):
        self.name = name
        self.config = config
        self._logger = logging.getLogger(name)
        self._lock = threading.Lock()
        self._setup_logger()

    def _setup_logger(self):
        with self._lock:
            for handler in list(self._logger.handlers):
                self._logger.removeHandler(handler)
                handler.close()

            # Propagation stays on so pytest's caplog and host applications
            # still see the records.
            self._logger.setLevel(logging.DEBUG)

            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(self.config.console_level)
            console_handler.setFormatter(
                ColoredFormatter(
                    fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                    datefmt="%H:%M:%S",
                )
            )
            self._logger.addHandler(console_handler)

            if not self.config.log_to_file:
                return

            file_formatter = logging.Formatter(
                fmt="%(asctime)s | %(name)s | %(levelname)-8s | %(funcName)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            for path, level in (
                (self.config.main_log_file, self.config.file_level),
                (self.config.error_log_file, self.config.error_file_level),
            ):
                file_handler = logging.handlers.RotatingFileHandler(
                    path,
                    maxBytes=self.config.max_file_size,
                    backupCount=self.config.backup_count,
                    encoding="utf-8",
                )
                file_handler.setLevel(level)
                file_handler.setFormatter(file_formatter)
                self._logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        self._logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.warning(message, **kwargs)

    def error(self, message: str, exc_info=False, **kwargs):
        self._logger.error(message, exc_info=exc_info, **kwargs)


class LoggerManager:
    """Owns the shared configuration and one wrapper per logger name."""

    def __init__(self):
        self._lock = threading.RLock()
        self.config = LoggerConfig()
        self._loggers: Dict[str, ThreadSafeLogger] = {}
        logging.getLogger("asyncio").setLevel(logging.WARNING)
        logging.getLogger("gi").setLevel(logging.WARNING)

    def get_logger(self, name: str) -> ThreadSafeLogger:
        if name not in self._loggers:
            with self._lock:
                if name not in self._loggers:
                    self._loggers[name] = ThreadSafeLogger(name, self.config)
        return self._loggers[name]

    def reconfigure_all_loggers(self):
        with self._lock:
            for logger in self._loggers.values():
                logger._setup_logger()

    def set_console_level(self, level: int):
        with self._lock:
            self.config.console_level = level
            self.reconfigure_all_loggers()

    def set_log_to_file_enabled(self, enabled: bool):
        with self._lock:
            if self.config.log_to_file != enabled:
                self.config.log_to_file = enabled
                self.reconfigure_all_loggers()


_logger_manager = LoggerManager()


def get_logger(name: str = "remote_explorer") -> ThreadSafeLogger:
    return _logger_manager.get_logger(name)


def set_console_log_level(level_str: str) -> bool:
    """Set console logging level globally from a string."""
    level = _LEVEL_NAMES.get(str(level_str).upper())
    if level is None:
        get_logger("remote_explorer.logger").error(
            f"Invalid log level string: {level_str}"
        )
        return False
    _logger_manager.set_console_level(level)
    return True


def set_log_to_file_enabled(enabled: bool):
    """Enable or disable logging to files globally."""
    _logger_manager.set_log_to_file_enabled(enabled)


def log_session_event(event_type: str, session_id: str, details: str = ""):
    """Log a remote session lifecycle event (opened, parked, restored, closed)."""
    logger = get_logger("remote_explorer.sessions")
    message = f"Session '{session_id}' {event_type}"
    if details:
        message += f": {details}"
    logger.info(message)


def log_transfer_event(event_type: str, direction: str, details: str = ""):
    """Log a transfer batch event."""
    logger = get_logger("remote_explorer.transfers")
    message = f"{direction.capitalize()} batch {event_type}"
    if details:
        message += f": {details}"
    logger.info(message)


def log_error_with_context(error: Exception, context: str, logger_name: str = None):
    """Log an error with context information."""
    logger = get_logger(logger_name or "remote_explorer")
    logger.error(f"Error in {context}: {error}", exc_info=error)
