"""
Structured logging configuration for the block_drafting package.

Provides:
- JSON-lines formatter for machine-readable command logs
- Console formatter for human-readable output
- Timing helpers for drafting operations
- Context fields (command name, drawing file) attached to every record

Modules log through ``logging.getLogger(__name__)``; everything under the
``block_drafting`` logger ends up in the handlers installed here.

Usage:
    from block_drafting.logging_config import setup_logging, LogContext

    setup_logging(level=logging.INFO, json_file="drafting.log.json")

    with LogContext(command="array"):
        logger.info("Arraying block", extra={"block": "BOLT", "count": 5})
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

F = TypeVar('F', bound=Callable[..., Any])

PACKAGE_LOGGER = "block_drafting"

# LogRecord attributes that are not user-supplied extras
_RESERVED_KEYS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message', 'asctime',
})


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Collect the fields passed through ``extra={}`` or a LogContext."""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RESERVED_KEYS
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...", ...}
    """

    def __init__(self, include_extra: bool = True):
        """
        Args:
            include_extra: copy ``extra`` and context fields into the object
        """
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Serialize a record.

        Warnings and errors also carry their source location. Extra values
        that JSON cannot encode are written as their ``str()``.

        Args:
            record: record to serialize

        Returns:
            One line of JSON, non-ASCII text kept as is
        """
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            entry["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in _record_extras(record).items():
                try:
                    json.dumps(value)
                    entry[key] = value
                except (TypeError, ValueError):
                    entry[key] = str(value)

        return json.dumps(entry, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter.

    Format: [TIME] LEVEL logger: message [key=value ...]
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, show_extra: bool = True):
        """
        Args:
            use_colors: wrap the level name in ANSI colour codes
            show_extra: append ``extra`` and context fields as ``[key=value]``
        """
        super().__init__()
        self.use_colors = use_colors
        self.show_extra = show_extra

    def _format_extras(self, record: logging.LogRecord) -> str:
        parts = []
        for key, value in _record_extras(record).items():
            if isinstance(value, float):
                parts.append(f"{key}={value:.4g}")
            elif isinstance(value, (list, tuple)) and len(value) > 3:
                parts.append(f"{key}=[...{len(value)} items]")
            else:
                parts.append(f"{key}={value}")
        return " [" + ", ".join(parts) + "]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        """Render a record as one console line (plus traceback, if any).

        The ``block_drafting.`` prefix is dropped from logger names, so
        ``block_drafting.io.dxf_document`` shows as ``io.dxf_document``.

        Args:
            record: record to render

        Returns:
            Formatted text
        """
        time_str = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level_str = f"{self.COLORS[level]}{level:8}{self.COLORS['RESET']}"
        else:
            level_str = f"{level:8}"

        name = record.name
        if name.startswith(PACKAGE_LOGGER + "."):
            name = name[len(PACKAGE_LOGGER) + 1:]

        extras = self._format_extras(record) if self.show_extra else ""
        text = f"[{time_str}] {level_str} {name}: {record.getMessage()}{extras}"

        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def setup_logging(
    level: int = logging.INFO,
    json_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """Configure the ``block_drafting`` logger.

    Handlers from an earlier call are removed and closed, so the CLI can call
    this once per run and tests can call it repeatedly.

    Args:
        level: minimum log level
        json_file: optional path for a JSON-lines log file
        console: log to stderr
        use_colors: ANSI colours on the console

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
        logger.addHandler(console_handler)

    if json_file:
        json_handler = logging.FileHandler(Path(json_file), encoding='utf-8')
        json_handler.setLevel(level)
        json_handler.setFormatter(JSONFormatter())
        logger.addHandler(json_handler)

    logger.propagate = False
    return logger


@contextmanager
def log_timing(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    **extra_fields: Any
) -> Iterator[Dict[str, Any]]:
    """Log start, completion and failure of an operation with its duration.

    Failures are logged at ERROR and re-raised.

    Args:
        logger: logger to write to
        operation: human-readable operation name
        level: level of the start and completion records
        **extra_fields: fields added to every record of the operation

    Yields:
        dict whose entries are added to the completion record

    Example:
        with log_timing(logger, "Arraying blocks", block="BOLT") as info:
            result = run_array(...)
            info["blocks_created"] = result.blocks_created
    """
    info: Dict[str, Any] = {}
    started = time.perf_counter()

    logger.log(level, "Starting: %s", operation, extra={
        "event": "start",
        "operation": operation,
        **extra_fields
    })

    try:
        yield info
    except Exception as e:
        elapsed = time.perf_counter() - started
        logger.error("Failed: %s (%.3fs) - %s", operation, elapsed, e, extra={
            "event": "error",
            "operation": operation,
            "elapsed_seconds": elapsed,
            "error": str(e),
            **extra_fields
        })
        raise

    info['elapsed_seconds'] = time.perf_counter() - started
    logger.log(level, "Completed: %s (%.3fs)", operation, info['elapsed_seconds'], extra={
        "event": "complete",
        "operation": operation,
        **extra_fields,
        **info
    })


def timed(
    logger: Optional[logging.Logger] = None,
    level: int = logging.DEBUG,
    operation: Optional[str] = None,
) -> Callable[[F], F]:
    """Decorator form of :func:`log_timing`.

    Args:
        logger: logger to write to; defaults to the decorated function's module logger
        level: level of the start and completion records
        operation: operation name; defaults to the function name

    Returns:
        Decorator

    Example:
        @timed()
        def save(self, path=None):
            ...
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            func_logger = logger or logging.getLogger(func.__module__)
            with log_timing(func_logger, operation or func.__name__, level):
                return func(*args, **kwargs)

        return wrapper  # type: ignore
    return decorator


class LogContext:
    """Attach common fields to every record of the package logger.

    The filter goes on the package handlers rather than the logger, so records
    from child loggers such as ``block_drafting.commands`` get the fields too.
    Only handlers present when the context is entered are affected.

    Example:
        with LogContext(command="array", drawing="site.dxf"):
            logger.info("Block resolved")  # includes command, drawing
    """

    _current: Optional['LogContext'] = None

    def __init__(self, **fields: Any):
        """
        Args:
            **fields: attribute names and values set on each record
        """
        self.fields = fields
        self._previous: Optional['LogContext'] = None
        self._filter: Optional[logging.Filter] = None

    def __enter__(self) -> 'LogContext':
        self._previous = LogContext._current
        LogContext._current = self

        fields = self.fields

        class ContextFilter(logging.Filter):
            def filter(self, record: logging.LogRecord) -> bool:
                for key, value in fields.items():
                    setattr(record, key, value)
                return True

        self._filter = ContextFilter()
        for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
            handler.addFilter(self._filter)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._filter:
            for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
                handler.removeFilter(self._filter)
        LogContext._current = self._previous

    @classmethod
    def current(cls) -> Optional['LogContext']:
        """Innermost active context, or None."""
        return cls._current
