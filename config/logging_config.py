"""
logging_config.py - Logger wiring for scripts and the quote cart

- console output through rich, or JSON lines
- optional rotating files plus a separate errors-only file
- LogContext / ContextAdapter: quote, customer and operation on every record
- PerformanceLogger: elapsed time per operation (track / timed)
"""

import json
import logging
import functools
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable
from contextlib import contextmanager
from dataclasses import dataclass, asdict

from rich.logging import RichHandler

from .settings import LOGS_DIR

DEFAULT_LOGGER = "print_shop"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(lineno)d | %(message)s"
ERROR_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(lineno)d\n%(message)s\n"

MB = 1024 * 1024


class JSONFormatter(logging.Formatter):
    """One JSON object per record; `extra={"context": ...}` is kept as a nested object"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        context = getattr(record, "context", None)
        if context is not None:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


@dataclass
class LogContext:
    quote_id: Optional[str] = None
    customer_id: Optional[str] = None
    operation: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


class ContextAdapter(logging.LoggerAdapter):
    """Attaches its LogContext (or plain dict) as `record.context`"""

    def process(self, msg, kwargs):
        context = self.extra.to_dict() if isinstance(self.extra, LogContext) else dict(self.extra or {})
        kwargs.setdefault("extra", {})["context"] = context
        return msg, kwargs


class PerformanceLogger:
    """Times operations and logs the duration in ms"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def track(self, operation: str, **context):
        """
        Usage:
            with perf.track("finalize quote", customer_id="c1"):
                await store.create_quote(quote)

        Failures are logged with their duration and re-raised.
        """
        self.logger.debug(f"start: {operation}", extra={"context": context})
        started = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - started
            self.logger.error(
                f"failed: {operation} ({elapsed:.3f}s) - {e}",
                extra={"context": {**context, "error": str(e), "duration_ms": elapsed * 1000}},
            )
            raise
        elapsed = time.perf_counter() - started
        self.logger.info(
            f"done: {operation} ({elapsed:.3f}s)",
            extra={"context": {**context, "duration_ms": elapsed * 1000}},
        )

    def timed(self, operation: str = None):
        """Decorator form of track(); defaults to the function name"""
        def decorator(func: Callable):
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                with self.track(operation or func.__name__):
                    return func(*args, **kwargs)
            return wrapper
        return decorator


def _console_handler(json_format: bool) -> logging.Handler:
    if json_format:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        return handler
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s | %(message)s", datefmt=DATE_FORMAT))
    return handler


def _file_handler(path: Path, max_mb: int, backups: int, formatter: logging.Formatter,
                  level: int = logging.NOTSET) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=max_mb * MB, backupCount=backups, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    name: str = DEFAULT_LOGGER,
    level: str = "INFO",
    log_to_file: bool = False,
    log_to_console: bool = True,
    json_format: bool = False,
    log_dir: Path = None,
) -> logging.Logger:
    """
    Configure a named logger, replacing any handlers it already had.

    With log_to_file, writes `<name>_<YYYYMMDD>.log` (10MB x 5) and
    `<name>_errors.log` (ERROR and above, 5MB x 3) under log_dir,
    which defaults to <root>/logs.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if log_to_console:
        logger.addHandler(_console_handler(json_format))

    if log_to_file:
        target = Path(log_dir) if log_dir else LOGS_DIR
        target.mkdir(parents=True, exist_ok=True)

        formatter = JSONFormatter() if json_format else logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
        daily = target / f"{name}_{datetime.now():%Y%m%d}.log"
        logger.addHandler(_file_handler(daily, 10, 5, formatter))
        logger.addHandler(_file_handler(
            target / f"{name}_errors.log", 5, 3,
            logging.Formatter(ERROR_FORMAT, datefmt=DATE_FORMAT), level=logging.ERROR,
        ))

    return logger


def get_logger(name: str = None) -> logging.Logger:
    return logging.getLogger(name or DEFAULT_LOGGER)


def get_context_logger(name: str = None, context: LogContext = None, **fields) -> ContextAdapter:
    """Logger adapter carrying a LogContext built from `context` or keyword fields"""
    return ContextAdapter(get_logger(name), context or LogContext(**fields))


def get_perf_logger(name: str = None) -> PerformanceLogger:
    return PerformanceLogger(get_logger(name))
