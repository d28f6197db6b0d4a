"""
Configuration System - logging configuration for stepdiag

Reads the `logging` block of the stepdiag configuration file and lets
environment variables override it.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class LoggingConfig:
    """
    Example configuration file (stepdiag.yml):
        logging:
          enabled: true       # Must be true to enable logging (default: false)
          level: DEBUG
          format: text        # json or text
          output: stderr      # stderr or stdout
    """

    DEFAULT_CONFIG = {
        "enabled": False,
        "level": "INFO",
        "format": "json",
        "output": "stderr",
    }

    ENV_MAPPINGS = {
        "STEPDIAG_LOG_LEVEL": "level",
        "STEPDIAG_LOG_FORMAT": "format",
        "STEPDIAG_LOG_OUTPUT": "output",
    }

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration. Precedence: Environment > File > Default
        """
        config = cls.DEFAULT_CONFIG.copy()

        if config_path and Path(config_path).exists():
            file_config = cls._load_from_file(config_path)
            if isinstance(file_config, dict) and isinstance(file_config.get("logging"), dict):
                config.update(file_config["logging"])

        return cls._apply_env_overrides(config)

    @classmethod
    def _load_from_file(cls, config_path: str) -> Optional[Dict[str, Any]]:
        try:
            with open(config_path) as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            sys.stderr.write(f"Error loading config file {config_path}: {e}\n")
            return None

    @classmethod
    def _apply_env_overrides(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Environment variables:
            STEPDIAG_LOG_ENABLED: Enable/disable logging (true, false, yes, no, 1, 0)
            STEPDIAG_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            STEPDIAG_LOG_FORMAT: Output format (json, text)
            STEPDIAG_LOG_OUTPUT: Output destination (stderr, stdout)
        """
        if "STEPDIAG_LOG_ENABLED" in os.environ:
            config["enabled"] = os.environ["STEPDIAG_LOG_ENABLED"].lower() in ("true", "yes", "1", "on")

        for env_var, config_key in cls.ENV_MAPPINGS.items():
            if env_var in os.environ:
                config[config_key] = os.environ[env_var]

        return config

    @classmethod
    def setup_logging(cls, config_path: Optional[str] = None, **overrides):
        """
        Setup logging based on configuration.

        Example:
            LoggingConfig.setup_logging(config_path="stepdiag.yml", level="DEBUG", format="text")
        """
        from stepdiag.logging.structured_logger import LoggerFactory

        config = cls.load(config_path)
        config.update(overrides)

        if not config.get("enabled", False):
            LoggerFactory.configure(level="CRITICAL", format_style="json", stream=open(os.devnull, "w"))
            return

        is_valid, error = cls.validate(config)
        if not is_valid:
            sys.stderr.write(f"Invalid logging configuration: {error}\n")
            config = {**cls.DEFAULT_CONFIG, "enabled": True}

        stream = sys.stdout if config.get("output") == "stdout" else sys.stderr
        LoggerFactory.configure(
            level=config.get("level", "INFO"), format_style=config.get("format", "json"), stream=stream
        )

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> tuple:
        """
        Returns:
            Tuple of (is_valid, error_message)
        """
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = str(config.get("level", "INFO")).upper()
        if level not in valid_levels:
            return False, f"Invalid log level '{level}'. Must be one of: {', '.join(valid_levels)}"

        valid_formats = ["json", "text"]
        format_style = config.get("format", "json")
        if format_style not in valid_formats:
            return False, f"Invalid format '{format_style}'. Must be one of: {', '.join(valid_formats)}"

        valid_outputs = ["stderr", "stdout"]
        output = config.get("output", "stderr")
        if output not in valid_outputs:
            return False, f"Invalid output '{output}'. Must be one of: {', '.join(valid_outputs)}"

        return True, ""
