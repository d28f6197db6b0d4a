"""
stepdiag logging

Structured logging (NDJSON and text formats) configured from the `logging`
block of the configuration file or STEPDIAG_LOG_* environment variables.

Usage:
    from stepdiag.logging import get_logger

    logger = get_logger("stepdiag.diagnostics")
    logger.info("Diagnose finished", feature_files=4)
"""

from stepdiag.logging.structured_logger import LoggerFactory, StructuredLogger, LogLevel

__all__ = [
    "LoggerFactory",
    "StructuredLogger",
    "LogLevel",
    "get_logger",
]


def get_logger(name: str) -> StructuredLogger:
    return LoggerFactory.get_logger(name)
