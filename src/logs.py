"""Logging setup for the switchboard process.

The ``logging`` section of config.json selects the level and the handlers.
Values of the environment variables named under ``redact.patterns`` are
masked in every record before any handler writes it.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Iterable, List, Mapping, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s]\t[%(filename)s:%(lineno)d] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MASK = "***"


class SecretFilter(logging.Filter):
    """Replace known secret values in the rendered message with a mask."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__()
        # Longest first so a secret that contains another is masked whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self._secrets:
            masked = masked.replace(secret, MASK)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def secrets_from_env(redact: Mapping) -> List[str]:
    if not redact.get("enabled", False):
        return []
    return [os.environ[name] for name in redact.get("patterns", []) if os.environ.get(name)]


def _file_handler(file_config: Mapping, project_root: str) -> logging.Handler:
    path = file_config.get("path", "logs/switchboard.log")
    if not os.path.isabs(path):
        path = os.path.join(project_root, path)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_config.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_config.get("backup_count", 5)),
        encoding="utf-8",
    )


def setup_logging(config: Optional[Mapping], project_root: str, level_override: Optional[str] = None) -> bool:
    """Install root handlers; return False when logging stays unconfigured."""

    config = config or {}
    if not config.get("enabled", False) and not level_override:
        return False

    level = getattr(logging, str(level_override or config.get("level", "INFO")).upper(), logging.INFO)
    handlers: List[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler(sys.stdout))
    file_config = config.get("file", {})
    if file_config.get("enabled", False):
        handlers.append(_file_handler(file_config, project_root))
    if not handlers:
        return False

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    secret_filter = SecretFilter(secrets_from_env(config.get("redact", {})))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(secret_filter)
    logging.basicConfig(level=level, handlers=handlers, force=True)
    return True
