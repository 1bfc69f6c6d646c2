"""Logging initialization helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from radioflow.config import LoggingSettings, Settings

# Per-request INFO lines from these libraries drown the pipeline logs.
_NOISY_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "urllib3", "s3transfer")


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(
    cfg: LoggingSettings, log_dir: str, level: int, formatter: logging.Formatter
) -> logging.Handler:
    file_path = Path(str(cfg.file))
    if not file_path.is_absolute():
        file_path = Path(log_dir) / file_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        file_path,
        maxBytes=int(cfg.max_bytes),
        backupCount=int(cfg.backup_count),
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(settings: Settings) -> None:
    """Configure the `radioflow` logger tree once per process.

    Framework loggers (uvicorn, fastapi) are left alone; chatty HTTP/S3
    client loggers are capped at WARNING.
    """
    logger = logging.getLogger("radioflow")
    if getattr(logger, "_radioflow_configured", False):
        return

    cfg = settings.logging
    level = getattr(logging, str(cfg.level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(fmt=str(cfg.format), datefmt=str(cfg.datefmt))

    handlers: list[logging.Handler] = []
    if cfg.console:
        handlers.append(_console_handler(level, formatter))
    if cfg.file:
        handlers.append(_file_handler(cfg, settings.log_dir, level, formatter))

    logger.setLevel(level)
    logger.handlers = handlers
    logger.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    setattr(logger, "_radioflow_configured", True)
