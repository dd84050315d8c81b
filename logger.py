"""Logging setup and export progress reporting."""

import logging
import logging.handlers
import time
from typing import Any, Dict, List, Optional

import colorlog

ROOT_LOGGER_NAME = 'confluence_export_md'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def resolve_level(verbosity: int = 0, level: Optional[str] = None) -> int:
    """
    Turn a level name or a ``-v`` count into a logging level.

    An explicit level name wins over the verbosity count.

    Raises:
        ValueError: If the level name is not a standard logging level
    """
    if level:
        name = str(level).upper()
        if name not in LOG_LEVELS:
            raise ValueError(f"Invalid log level '{level}'. Must be one of: {list(LOG_LEVELS)}")
        return getattr(logging, name)
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbosity: int = 0, log_file: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger: colored console output plus an optional rotating file.

    Calling it again replaces the handlers of the previous call, so the CLI
    can set up console logging first and add the configured file later.

    Args:
        verbosity: Number of ``-v`` flags (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Path of a rotating log file, if any
        level: Explicit level name, overrides verbosity

    Returns:
        The package root logger
    """
    log_level = resolve_level(verbosity, level)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = colorlog.StreamHandler()
    console.setFormatter(colorlog.ColoredFormatter(
        '%(log_color)s' + LOG_FORMAT,
        datefmt=DATE_FORMAT,
        log_colors=LOG_COLORS,
    ))
    logger.addHandler(console)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding='utf-8',
            )
        except OSError as e:
            logger.warning(f"Cannot write log file {log_file}: {e}")
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            logger.addHandler(file_handler)
            logger.debug(f"Writing log file {log_file}")

    return logger


class ProgressTracker:
    """
    Counts pages during a directory export and reports how it went.

    Used as a context manager around the page loop. Progress is logged every
    ``report_every`` pages and after each failure; leaving the block logs a
    summary at INFO, WARNING (some pages failed) or ERROR (all pages failed).
    """

    def __init__(self, total_items: int, item_type: str = 'pages', report_every: int = 25):
        self.total_items = total_items
        self.item_type = item_type
        self.report_every = max(1, report_every)
        self.succeeded = 0
        self.failures: List[str] = []
        self.started_at: Optional[float] = None
        self.logger = logging.getLogger(ROOT_LOGGER_NAME + '.progress')

    @property
    def processed(self) -> int:
        return self.succeeded + len(self.failures)

    def __enter__(self) -> 'ProgressTracker':
        self.started_at = time.monotonic()
        self.logger.info(f"Converting {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.started_at is None:
            return

        summary = self.summary()
        message = (
            f"{summary['succeeded']}/{summary['total']} {self.item_type} converted, "
            f"{summary['failed']} failed in {format_duration(summary['elapsed'])}"
        )
        if not self.failures:
            self.logger.info(message)
        elif summary['succeeded'] == 0:
            self.logger.error(message)
        else:
            self.logger.warning(message)
            for name in self.failures:
                self.logger.warning(f"  failed: {name}")

    def record(self, name: str, success: bool = True) -> None:
        """Count one page; ``name`` is kept for the failure list."""
        if success:
            self.succeeded += 1
        else:
            self.failures.append(name)

        if not success or self.processed % self.report_every == 0:
            self.logger.info(
                f"[{self.processed}/{self.total_items}] {'ok' if success else 'FAILED'}: {name}"
            )

    def summary(self) -> Dict[str, Any]:
        elapsed = time.monotonic() - self.started_at if self.started_at is not None else 0.0
        return {
            'total': self.total_items,
            'succeeded': self.succeeded,
            'failed': len(self.failures),
            'failures': list(self.failures),
            'elapsed': elapsed,
        }


def format_duration(seconds: float) -> str:
    """Render a duration as ``4.2s``, ``3m 10s`` or ``1h 2m 5s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective configuration, one ``section.key: value`` line per setting."""
    logger = logging.getLogger(ROOT_LOGGER_NAME + '.config')
    logger.info("Effective configuration:")
    for section in ('conversion', 'export', 'logging'):
        values = config.get(section) or {}
        if not values:
            logger.info(f"  {section}: defaults")
            continue
        for key in sorted(values):
            logger.info(f"  {section}.{key}: {values[key]}")


__all__ = [
    'ProgressTracker',
    'format_duration',
    'log_config',
    'resolve_level',
    'setup_logging',
]
