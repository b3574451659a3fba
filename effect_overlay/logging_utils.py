from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "EffectOverlay"
LOG_TAG = "EffectOverlay"
DEBUG_LOG_FILENAME = "effect_overlay_debug.log"
DEBUG_LOG_MAX_BYTES = 512 * 1024
DEBUG_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_host_logger: Optional[logging.Logger] = None


def bind_host_logger(logger: Optional[logging.Logger]) -> None:
    """Route plugin log records through the host's logger (``None`` restores the root fallback)."""

    global _host_logger
    _host_logger = logger if isinstance(logger, logging.Logger) else None


class _HostLogHandler(logging.Handler):
    """Logging bridge that prefers the host logger and falls back to the root logger."""

    def emit(self, record: logging.LogRecord) -> None:
        message = self.format(record)
        host_logger = _host_logger
        if host_logger is not None:
            try:
                if host_logger.isEnabledFor(record.levelno):
                    host_logger.log(record.levelno, message)
                return
            except Exception:
                # Host logger broke; keep the record by falling through to root.
                pass
        root_logger = logging.getLogger()
        if root_logger.isEnabledFor(record.levelno):
            root_logger.log(record.levelno, message)


def configure_logger(level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if logger.level == logging.NOTSET:
        logger.setLevel(level)
    if not any(getattr(handler, "_host_handler", False) for handler in logger.handlers):
        handler = _HostLogHandler()
        handler._host_handler = True  # type: ignore[attr-defined]
        formatter = logging.Formatter(f"[%(asctime)s] [{LOG_TAG}] %(message)s", "%H:%M:%S")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def build_rotating_debug_handler(log_dir: Path, retention: int) -> RotatingFileHandler:
    """Open ``effect_overlay_debug.log`` under ``log_dir``; ``retention`` counts the live file plus backups."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / DEBUG_LOG_FILENAME,
        maxBytes=DEBUG_LOG_MAX_BYTES,
        backupCount=max(1, retention) - 1,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT))
    handler.setLevel(logging.DEBUG)
    return handler
