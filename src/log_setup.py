"""Logging setup driven by the ``logging`` block of config.json.

Riot API keys travel in request headers and Bot API tokens in URLs, so both
can end up in exception messages. The formatter masks them before any
handler writes a line.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, List, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RedactingFormatter(logging.Formatter):
    """Replace secret values with ``***`` in fully formatted records."""

    def __init__(self, secrets: Iterable[str], fmt: str = LOG_FORMAT, datefmt: Optional[str] = DATE_FORMAT) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a secret containing another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def secrets_from_env(config: dict) -> List[str]:
    """Resolve the env var names listed under ``redact.patterns`` to values."""

    redact = config.get("redact", {})
    if not redact.get("enabled", False):
        return []
    return [os.environ[name] for name in redact.get("patterns", []) if os.environ.get(name)]


def build_handlers(config: dict, project_root: str, formatter: logging.Formatter) -> List[logging.Handler]:
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    handlers: List[logging.Handler] = []

    if config.get("console", True):
        handlers.append(logging.StreamHandler())

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/riftwatch.log")
        if not os.path.isabs(path):
            path = os.path.join(project_root, path)
        if os.path.dirname(path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: Optional[dict], project_root: str) -> None:
    """Install root handlers; a disabled or empty config leaves logging alone."""

    config = config or {}
    if not config.get("enabled", False):
        return

    formatter = RedactingFormatter(secrets_from_env(config))
    handlers = build_handlers(config, project_root, formatter)
    if not handlers:
        return

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, handlers=handlers)
