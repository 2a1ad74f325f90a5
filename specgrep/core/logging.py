"""Structured logging for specgrep.

This module provides structured logging with:
- Correlation ID generation and propagation (one ID per selection run)
- JSON output when piped, pretty console output on a terminal
- Common fields (version, hostname)
- Log level configuration per module
- Log injection sanitizing
- Integration with Python's standard logging

Example usage:
    from specgrep.core.logging import configure_logging, correlation_context

    configure_logging()

    logger = logging.getLogger(__name__)

    with correlation_context():
        logger.info("filtering specs")  # Includes correlation_id
"""

import logging
import re
import socket
import sys
import uuid
from contextvars import ContextVar
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from specgrep.core.settings import SpecGrepSettings

# Kept in sync with specgrep.__version__ (not imported to avoid circular imports)
SPECGREP_VERSION = "1.0.0"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Module-level log level overrides
_module_log_levels: dict[str, int] = {}

# Control characters that could forge extra log lines
_CONTROL_CHARS = re.compile(r"[\r\n\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def generate_correlation_id() -> str:
    """Generate a unique correlation ID (UUID4 format)."""
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID in the current context.

    Args:
        correlation_id: The correlation ID to set, or None to clear.
    """
    _correlation_id.set(correlation_id)


class correlation_context:
    """Context manager for correlation ID propagation.

    Example:
        with correlation_context("run-123"):
            logger.info("filtering")  # Includes correlation_id="run-123"

        # Or generate a new ID automatically:
        async with correlation_context():
            logger.info("filtering")
    """

    def __init__(self, correlation_id: str | None = None) -> None:
        """Initialize the correlation context.

        Args:
            correlation_id: Optional correlation ID. If None, generates a new one.
        """
        self.correlation_id = correlation_id or generate_correlation_id()
        self._token: Any = None

    def __enter__(self) -> str:
        self._token = _correlation_id.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, *args: Any) -> None:
        _correlation_id.reset(self._token)

    async def __aenter__(self) -> str:
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


# =============================================================================
# Structlog Processors
# =============================================================================


def add_correlation_id(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add correlation ID to log events if available."""
    correlation_id = get_correlation_id()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


@lru_cache(maxsize=1)
def _get_hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "unknown"


def add_common_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add common fields like version and hostname."""
    event_dict.setdefault("specgrep_version", SPECGREP_VERSION)
    event_dict.setdefault("hostname", _get_hostname())
    return event_dict


def sanitize_log_message(message: str) -> str:
    """Escape control characters so one event cannot span several lines."""
    return _CONTROL_CHARS.sub(lambda m: repr(m.group())[1:-1], message)


def sanitize_event(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Sanitize log messages to prevent log injection.

    Grep expressions and spec titles come straight from user input.
    """
    event = event_dict.get("event", "")
    if isinstance(event, str):
        event_dict["event"] = sanitize_log_message(event)
    return event_dict


def filter_by_module_level(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Filter log events based on module-specific log levels."""
    if not _module_log_levels:
        return event_dict

    logger_name = event_dict.get("logger", "")
    if not logger_name:
        return event_dict

    # Most specific module prefix wins
    level_threshold = None
    matched_prefix = ""

    for module, level in _module_log_levels.items():
        if logger_name == module or logger_name.startswith(f"{module}."):
            if len(module) > len(matched_prefix):
                level_threshold = level
                matched_prefix = module

    if level_threshold is not None:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "warn": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
            "exception": logging.ERROR,
        }
        current_level = level_map.get(method_name.lower(), logging.INFO)

        if current_level < level_threshold:
            raise structlog.DropEvent

    return event_dict


# =============================================================================
# Logging Configuration
# =============================================================================


def set_module_log_level(module: str, level: int | str) -> None:
    """Set the log level for a specific module.

    Args:
        module: Module name (e.g., "specgrep.selection")
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
    """
    if isinstance(level, str):
        numeric_level: int = getattr(logging, level.upper(), logging.INFO)
    else:
        numeric_level = level
    _module_log_levels[module] = numeric_level


def get_module_log_level(module: str) -> int | None:
    """Get the log level override for a specific module, if any."""
    return _module_log_levels.get(module)


def clear_module_log_levels() -> None:
    """Clear all module-specific log level overrides."""
    _module_log_levels.clear()


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_correlation_id,
        add_common_fields,
        filter_by_module_level,
        sanitize_event,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    level: str | int = logging.INFO,
    json_output: bool | None = None,
    log_file: str | None = None,
    module_levels: dict[str, str | int] | None = None,
) -> None:
    """Configure structured logging for the application.

    Sets up structlog with the shared processors and routes the standard
    library loggers used throughout specgrep through the same renderer.

    Args:
        level: Global log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Use JSON output format. If None, auto-detects:
                     True if stderr is not a TTY, False otherwise
        log_file: Optional file path for log output
        module_levels: Dict of module name to log level for per-module config
    """
    if json_output is None:
        json_output = not sys.stderr.isatty()

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if module_levels:
        for module, mod_level in module_levels.items():
            set_module_log_level(module, mod_level)

    shared_processors = _shared_processors()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    else:
        formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=True),
            foreign_pre_chain=shared_processors,
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout is reserved for command output (spec lists, JSON)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def configure_logging_from_settings(
    settings: "SpecGrepSettings", level: str | int | None = None
) -> None:
    """Configure logging from the logging section of specgrep settings.

    Args:
        settings: Loaded settings.
        level: Overrides the configured level, e.g. DEBUG for --verbose.
    """
    configure_logging(
        level=level or settings.logging.level,
        json_output=settings.logging.json_output,
        log_file=settings.logging.file,
        module_levels=settings.logging.module_levels or None,
    )


def reset_logging() -> None:
    """Reset logging configuration to defaults.

    Primarily useful for testing to ensure clean state between tests.
    """
    clear_module_log_levels()
    _correlation_id.set(None)

    structlog.reset_defaults()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
