"""Centralized logging configuration for the admin console."""

import json
import logging
import logging.handlers
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from ar_admin.utils.logging_utils import _ContextFilter, sanitize_sensitive_data

if TYPE_CHECKING:
    from ar_admin.config.settings import AdminConsoleConfig

# LogRecord attributes that are not user supplied context
_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Fields added through extra={} or LogContext
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        }
        payload.update(sanitize_sensitive_data(extras))

        return json.dumps(payload, default=str)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes")


def _env_options() -> Dict[str, Any]:
    """Logging options read from LOG_* environment variables."""
    return {
        "log_format": os.getenv("LOG_FORMAT", "standard"),
        "log_file": os.getenv("LOG_FILE") or None,
        "enable_console": _env_flag("LOG_CONSOLE", True),
        "enable_file": _env_flag("LOG_FILE_ENABLED", False),
        "max_file_size": int(os.getenv("LOG_MAX_FILE_SIZE", str(5 * 1024 * 1024))),
        "backup_count": int(os.getenv("LOG_BACKUP_COUNT", "3")),
    }


class LoggingConfig:
    """
    Configuration for centralized logging.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format type ('standard' or 'json')
        log_file: Path to log file (optional)
        enable_console: Enable console output
        enable_file: Enable file output
        max_file_size: Maximum log file size in bytes
        backup_count: Number of rotated files to keep
    """

    VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    VALID_FORMATS = {"standard", "json"}
    DEFAULT_FILE_NAME = "ar-admin.log"

    def __init__(
        self,
        log_level: str = "WARNING",
        log_format: str = "standard",
        log_file: Optional[str] = None,
        enable_console: bool = True,
        enable_file: bool = False,
        max_file_size: int = 5 * 1024 * 1024,
        backup_count: int = 3,
    ):
        """
        Raises:
            ValueError: If the level or format is unknown, or file logging is
                enabled without a path
        """
        for label, value, valid in (
            ("log level", log_level.upper(), self.VALID_LEVELS),
            ("log format", log_format, self.VALID_FORMATS),
        ):
            if value not in valid:
                raise ValueError(
                    f"Invalid {label}: {value}. "
                    f"Must be one of {', '.join(sorted(valid))}"
                )

        if enable_file and not log_file:
            raise ValueError("log_file must be specified when enable_file is True")

        self.log_level = log_level.upper()
        self.log_format = log_format
        self.log_file = log_file
        self.enable_console = enable_console
        self.enable_file = enable_file
        self.max_file_size = max_file_size
        self.backup_count = backup_count

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """
        Create configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Log level (default: WARNING)
            LOG_FORMAT: standard or json (default: standard)
            LOG_FILE: Log file path
            LOG_CONSOLE: Enable console output (default: true)
            LOG_FILE_ENABLED: Enable file output (default: false)
            LOG_MAX_FILE_SIZE, LOG_BACKUP_COUNT: Rotation limits
        """
        return cls(log_level=os.getenv("LOG_LEVEL", "WARNING"), **_env_options())

    @classmethod
    def from_settings(
        cls, settings: "AdminConsoleConfig", debug: bool = False
    ) -> "LoggingConfig":
        """
        Build from console settings; --debug forces DEBUG level.

        With LOG_FILE_ENABLED and no LOG_FILE the log is written next to the
        session file.
        """
        options = _env_options()
        if options["enable_file"] and not options["log_file"]:
            session_dir = Path(settings.session_file).expanduser().parent
            options["log_file"] = str(session_dir / cls.DEFAULT_FILE_NAME)

        level = "DEBUG" if debug or settings.debug else settings.log_level
        return cls(log_level=level, **options)


def configure_logging(config: LoggingConfig) -> None:
    """
    Install handlers on the root logger according to the configuration.

    Existing handlers are removed first so repeated CLI invocations in one
    process do not duplicate output.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    level = getattr(logging, config.log_level)
    root_logger.setLevel(level)

    if config.log_format == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    context_filter = _ContextFilter()

    if config.enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(context_filter)
        root_logger.addHandler(console_handler)

    if config.enable_file and config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

    # urllib3 is chatty at DEBUG and logs full URLs
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def reset_logging() -> None:
    """Remove all handlers and restore the default root level."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(logging.WARNING)
