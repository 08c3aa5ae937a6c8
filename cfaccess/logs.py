from __future__ import annotations

import logging
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RedactingFormatter(logging.Formatter):
    """Formatter that masks configured secret values in the rendered record."""

    def __init__(self, secrets: Iterable[str], fmt: str = LOG_FORMAT, datefmt: Optional[str] = DATE_FORMAT) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first so a secret containing another is masked whole.
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def configure_logging(level: str = "INFO", secrets: Iterable[str] = ()) -> None:
    """Install a single console handler on the root logger."""
    resolved = getattr(logging, str(level).upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(resolved)
    handler.setFormatter(RedactingFormatter(secrets))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolved)

    # httpx logs every request at INFO, including provider URLs we already log.
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
