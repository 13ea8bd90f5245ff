"""Centralized logging configuration for MetaExchange."""

import json
import logging
import logging.handlers
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(Enum):
    """Log format types."""

    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"
    COMPACT = "compact"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = LogLevel.INFO
    format_type: LogFormat = LogFormat.DETAILED
    log_to_console: bool = True
    log_file: Optional[Path] = None
    max_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    colorize_console: bool = True

    @classmethod
    def from_settings(cls, level: str, format_type: str, log_file: Optional[Path] = None) -> "LoggingConfig":
        """Build from the plain strings held in application settings.

        Raises:
            ValueError: If level or format is unknown
        """
        return cls(
            level=LogLevel(level.upper()),
            format_type=LogFormat(format_type.lower()),
            log_file=log_file,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "level": self.level.value,
            "format_type": self.format_type.value,
            "log_to_console": self.log_to_console,
            "log_file": str(self.log_file) if self.log_file else None,
            "max_bytes": self.max_bytes,
            "backup_count": self.backup_count,
            "colorize_console": self.colorize_console,
        }


LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1m\033[31m",
}
RESET = "\033[0m"


class JsonFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Format as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


class ColoredFormatter(logging.Formatter):
    """Formatter with colored level names for console output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format with colors."""
        color = LEVEL_COLORS.get(record.levelname, "")
        original_levelname = record.levelname
        record.levelname = f"{color}{record.levelname}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class CompactFormatter(logging.Formatter):
    """Compact log format for high-volume logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format compactly."""
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S")
        return f"{ts} {record.levelname[0]} [{record.name}] {record.getMessage()}"


class LoggerRegistry:
    """Owns root logger setup."""

    def __init__(self):
        self._config = LoggingConfig()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def configure(self, config: Optional[LoggingConfig] = None) -> None:
        """Configure logging system."""
        if config:
            self._config = config

        root_logger = logging.getLogger()
        level = getattr(logging, self._config.level.value)
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        if self._config.log_to_console:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level)
            handler.setFormatter(self._create_formatter(for_console=True))
            root_logger.addHandler(handler)

        if self._config.log_file:
            root_logger.addHandler(self._create_file_handler(level))

        self._initialized = True

    def _create_file_handler(self, level: int) -> logging.Handler:
        """Create rotating file handler."""
        log_file = Path(self._config.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=self._config.max_bytes,
            backupCount=self._config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(self._create_formatter(for_console=False))
        return handler

    def _create_formatter(self, for_console: bool) -> logging.Formatter:
        """Create formatter based on config."""
        format_type = self._config.format_type

        if format_type == LogFormat.JSON:
            return JsonFormatter()

        if format_type == LogFormat.COMPACT:
            return CompactFormatter()

        if format_type == LogFormat.SIMPLE:
            fmt = "%(levelname)s: %(message)s"
        else:  # DETAILED
            fmt = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

        if for_console and self._config.colorize_console and sys.stderr.isatty():
            return ColoredFormatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")
        return logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def get_status(self) -> Dict[str, Any]:
        """Get logging status."""
        root = logging.getLogger()
        return {
            "initialized": self._initialized,
            "level": logging.getLevelName(root.level),
            "handlers": [type(h).__name__ for h in root.handlers],
            "config": self._config.to_dict(),
        }


# Global registry
_registry: Optional[LoggerRegistry] = None


def get_registry() -> LoggerRegistry:
    """Get or create global logger registry."""
    global _registry
    if _registry is None:
        _registry = LoggerRegistry()
    return _registry


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure global logging."""
    get_registry().configure(config)


def configure_from_settings(settings: Any) -> None:
    """Configure logging from a ``MetaExchangeConfig``."""
    configure_logging(
        LoggingConfig.from_settings(settings.log_level, settings.log_format, settings.log_file)
    )
