"""
Logging for PaperLens.

One named logger, 'PaperLens', feeds two handlers:
- logs/processing.log, at DEBUG level, rotated at 2 MB (always on)
- stdout, at DEBUG in DEBUG_MODE and WARNING otherwise

Modules log through the helpers below and tag messages with their
component so a single log file can be followed per stage:

    from paperlens.logging_config import debug_log, warning, Timer

    debug_log("[CHUNK PLANNER] 12 pages -> 3 chunks")
    with Timer("Synthesis"):
        ...
"""

import logging
import sys
import time
from logging.handlers import RotatingFileHandler

from paperlens.config import DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT

LOGGER_NAME = 'PaperLens'
LOG_MAX_BYTES = 2 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def _build_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Re-imports (tests, reloads) must not stack handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    try:
        file_handler = RotatingFileHandler(
            LOG_FILE, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
        )
    except OSError as e:
        print(f"[{LOGGER_NAME}] File logging disabled: {e}", file=sys.stderr)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.set_name('console')
    console_handler.setLevel(logging.DEBUG if DEBUG_MODE else logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


_logger = _build_logger()


def set_console_level(level: int) -> None:
    """Change how much reaches the console; the log file always keeps DEBUG."""
    for handler in _logger.handlers:
        if handler.get_name() == 'console':
            handler.setLevel(level)


def format_duration(seconds: float) -> str:
    """Human-readable duration: '850 ms', '2.34s' or '3.1m'."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    return f"{seconds / 60:.1f}m"


class Timer:
    """
    Context manager that logs how long a block took.

    Usage:
        with Timer("Extracting paper.pdf"):
            text = extractor.extract_full_text(path)

    Log file:
        [DEBUG 14:32:01] Extracting paper.pdf started
        [DEBUG 14:32:03] Extracting paper.pdf took 2.10s

    The measured time is kept in duration_ms after the block exits,
    also when the block raised.
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self._started: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"{self.operation_name} started")
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self._started
        self.duration_ms = elapsed * 1000
        if self.auto_log:
            outcome = "failed after" if exc_type is not None else "took"
            debug_log(f"{self.operation_name} {outcome} {format_duration(elapsed)}")
        return False

    def get_duration_ms(self) -> float:
        """
        Raises:
            ValueError: If the timed block has not finished
        """
        if self.duration_ms is None:
            raise ValueError(f"Timer '{self.operation_name}' has not finished")
        return self.duration_ms


def debug_log(message: str):
    """Detail for the log file (console only in DEBUG_MODE)."""
    _logger.debug(message)


def info(message: str):
    _logger.info(message)


def warning(message: str):
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error.

    Args:
        message: "[COMPONENT] what went wrong"
        exc_info: Attach the active traceback (honoured only in DEBUG_MODE)
    """
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


__all__ = [
    'LOGGER_NAME',
    'debug_log',
    'info',
    'warning',
    'error',
    'set_console_level',
    'format_duration',
    'Timer',
]
