"""
Structured Logger - dependency free structured logging for stepdiag

Emits one log entry per line, either as NDJSON or as human readable text, so
diagnostics runs can be followed in CI logs and picked up by log aggregators.

Usage:
    from stepdiag.logging.structured_logger import LoggerFactory

    logger = LoggerFactory.get_logger("stepdiag.loader")
    logger.info("Step definitions loaded", files=3, definitions=12)

    feature_logger = logger.with_context(feature_file="features/login.feature")
    feature_logger.debug("Classifying steps")
"""

import json
import sys
import traceback
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional, TextIO


class LogLevel(IntEnum):
    """Standard log levels compatible with Python logging"""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class StructuredLogger:
    """
    Logger writing structured entries to a text stream.

    Example:
        logger = StructuredLogger("stepdiag.diagnostics", level=LogLevel.INFO)
        logger.info("Diagnose finished", unmatched_steps=2)

        # Output:
        # {"timestamp":"2026-01-20T10:15:30.123456+00:00","level":"INFO","logger":"stepdiag.diagnostics","message":"Diagnose finished","unmatched_steps":2}
    """

    def __init__(
        self, name: str, level: LogLevel = LogLevel.INFO, output_stream: TextIO = None, format_style: str = "json"
    ):
        """
        Args:
            name: Logger name (usually module path)
            level: Minimum log level to output
            output_stream: Output stream (default: sys.stderr)
            format_style: Output format - "json" or "text"
        """
        self.name = name
        self.level = level
        self.output_stream = output_stream or sys.stderr
        self.format_style = format_style
        self._context: Dict[str, Any] = {}

    def _should_log(self, level: LogLevel) -> bool:
        return level.value >= self.level.value

    def _format_log(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.name,
            "logger": self.name,
            "message": message,
        }
        log_entry.update(self._context)
        if extra:
            log_entry.update(extra)

        if self.format_style == "json":
            return json.dumps(log_entry, default=str)

        level_str = f"[{log_entry['level']}]".ljust(10)
        fields = " ".join(
            f"{key}={value}" for key, value in log_entry.items() if key not in ("timestamp", "level", "logger", "message")
        )
        suffix = f" | {fields}" if fields else ""
        return f"{log_entry['timestamp']} {level_str} {self.name.ljust(20)} | {message}{suffix}"

    def _write(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        if not self._should_log(level):
            return

        if exc_info:
            extra = dict(extra or {})
            exc_type, exc_value, exc_tb = sys.exc_info()
            if exc_type is not None:
                extra["exception"] = {
                    "type": exc_type.__name__,
                    "message": str(exc_value),
                    "traceback": "".join(traceback.format_tb(exc_tb)),
                }

        log_line = self._format_log(level, message, extra)
        try:
            self.output_stream.write(log_line + "\n")
            self.output_stream.flush()
        except (OSError, ValueError):
            # Closed or broken stream, fall back to stderr
            if self.output_stream is not sys.stderr:
                sys.stderr.write(log_line + "\n")

    def debug(self, message: str, **extra):
        self._write(LogLevel.DEBUG, message, extra)

    def info(self, message: str, **extra):
        self._write(LogLevel.INFO, message, extra)

    def warning(self, message: str, **extra):
        self._write(LogLevel.WARNING, message, extra)

    def error(self, message: str, exc_info: bool = False, **extra):
        """
        Log error message.

        Args:
            message: Log message
            exc_info: Include the traceback of the exception being handled
            **extra: Additional structured fields
        """
        self._write(LogLevel.ERROR, message, extra, exc_info=exc_info)

    def critical(self, message: str, exc_info: bool = False, **extra):
        self._write(LogLevel.CRITICAL, message, extra, exc_info=exc_info)

    def with_context(self, **context) -> "StructuredLogger":
        """
        Return a logger whose entries all carry the given context fields.

        Example:
            feature_logger = logger.with_context(feature_file="login.feature")
        """
        new_logger = StructuredLogger(self.name, self.level, self.output_stream, self.format_style)
        new_logger._context = {**self._context, **context}
        return new_logger

    def set_level(self, level: LogLevel):
        self.level = level


class LoggerFactory:
    """
    Factory for creating loggers with consistent configuration.

    Loggers are cached by name, configure() updates the ones already handed out.
    """

    _default_level = LogLevel.INFO
    _default_format = "json"
    _default_stream = sys.stderr
    _loggers: Dict[str, StructuredLogger] = {}

    @classmethod
    def configure(cls, level: str = "INFO", format_style: str = "json", stream: TextIO = None):
        """
        Configure default logger settings.

        Args:
            level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            format_style: Output format - "json" or "text"
            stream: Output stream (default: sys.stderr)
        """
        level_upper = level.upper()
        if level_upper not in LogLevel.__members__:
            raise ValueError(f"Invalid log level: {level}. Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        if format_style not in ("json", "text"):
            raise ValueError(f"Invalid format style: {format_style}. Must be 'json' or 'text'")

        cls._default_level = LogLevel[level_upper]
        cls._default_format = format_style
        if stream:
            cls._default_stream = stream

        for logger in cls._loggers.values():
            logger.level = cls._default_level
            logger.format_style = cls._default_format
            logger.output_stream = cls._default_stream

    @classmethod
    def get_logger(cls, name: str) -> StructuredLogger:
        if name not in cls._loggers:
            cls._loggers[name] = StructuredLogger(name, cls._default_level, cls._default_stream, cls._default_format)
        return cls._loggers[name]

    @classmethod
    def reset(cls):
        """Reset factory to defaults and clear all cached loggers. Useful for testing."""
        cls._default_level = LogLevel.INFO
        cls._default_format = "json"
        cls._default_stream = sys.stderr
        cls._loggers = {}
