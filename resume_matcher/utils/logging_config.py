"""
Logging setup for the Resume Matcher API.

Everything logs under the ``resume_matcher`` namespace. Structured fields
passed through ``extra=`` (request ids, candidate ids, error codes) are
rendered by ``ContextFilter`` so they survive into plain-text log lines.
"""
import functools
import logging
import logging.config
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "resume_matcher"

# extra= keys worth printing, in display order
CONTEXT_FIELDS = ("request_id", "candidate_id", "error_code", "status_code", "details")

LOG_FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s%(context)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s%(context)s",
}

# environment -> (level override, file logging, format)
ENVIRONMENT_PROFILES = {
    "production": (None, True, "detailed"),
    "development": ("DEBUG", True, "detailed"),
    "testing": ("WARNING", False, "simple"),
}


class ContextFilter(logging.Filter):
    """Append known ``extra`` fields to the record as ``[key=value ...]``."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) not in (None, "", {})
        ]
        record.context = f" [{' '.join(parts)}]" if parts else ""
        return True


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Configure the root, ``resume_matcher`` and uvicorn loggers.

    Args:
        level: Logging level name
        log_file: Rotating log file path (defaults to $LOG_DIR/resume_matcher.log)
        enable_file: Also write to the rotating log file
        format_style: 'simple' or 'detailed'
    """
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style,
            "filters": ["context"],
            "stream": "ext://sys.stdout",
        }
    }

    if enable_file:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "detailed",
            "filters": ["context"],
            "filename": str(log_file or log_dir / "resume_matcher.log"),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf8",
        }

    handler_names = list(handlers)
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"context": {"()": ContextFilter}},
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"}
            for name, fmt in LOG_FORMATS.items()
        },
        "handlers": handlers,
        "loggers": {
            "": {"level": level, "handlers": handler_names, "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": handler_names, "propagate": False},
        },
    })

    get_logger("logging").info(f"Logging configured - level={level} file={enable_file} format={format_style}")


def configure_for_environment():
    """Pick a logging profile from ENVIRONMENT and LOG_LEVEL"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    level, enable_file, format_style = ENVIRONMENT_PROFILES.get(environment, (None, True, "detailed"))
    setup_logging(level=level or log_level, enable_file=enable_file, format_style=format_style)


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``resume_matcher``"""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_function_call(func):
    """Debug-log entry and duration of an async service call, and log its failures"""
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start_time = time.time()
        logger.debug(f"Entering {func.__name__}")
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__name__} failed after {time.time() - start_time:.3f}s: {e}")
            raise
        logger.debug(f"Completed {func.__name__} in {time.time() - start_time:.3f}s")
        return result

    return wrapper


def log_api_call(operation: str):
    """Decorator logging start, duration and failure of an API endpoint"""
    def decorator(func):
        logger = get_logger(f"api.{func.__module__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            logger.info(f"API {operation} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"API {operation} failed after {time.time() - start_time:.3f}s: {e}",
                    extra={"error_code": getattr(e, "error_code", None)},
                )
                raise
            logger.info(f"API {operation} completed in {time.time() - start_time:.3f}s")
            return result

        return wrapper
    return decorator


class PerformanceMonitor:
    """Time a block; warn when it runs longer than ``threshold_ms``"""

    def __init__(self, operation_name: str, logger: Optional[logging.Logger] = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000
        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} took {self.elapsed_ms:.2f}ms (threshold {self.threshold_ms}ms)")
        else:
            self.logger.debug(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
        return False
