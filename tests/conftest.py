import logging
import sys

import httpx
import pytest

# Ensure project root is importable (so `import cfaccess` and `import cli` work without installing)
import os as _os
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from cfaccess.alerts import Notifier, NotificationFailure  # noqa: E402
from cfaccess.settings import Settings  # noqa: E402


BASE_ENV = {
    "ACCOUNTID": "acct-123",
    "RULEID": "rule-456",
    "CRON": "*/5 * * * *",
    "AUTH_TOKEN": "secret-token",
}


class RecordingTransport:
    """Notification transport that keeps every message instead of sending it."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    def send(self, url: str, message: str) -> None:
        self.sent.append((url, message))
        if self.fail:
            raise NotificationFailure("transport down")

    @property
    def messages(self) -> list[str]:
        return [m for _, m in self.sent]


@pytest.fixture(autouse=True)
def restore_root_logger():
    """configure_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def settings() -> Settings:
    return Settings.from_env(dict(BASE_ENV))


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def notifier(transport) -> Notifier:
    return Notifier("json://localhost/hook", transport=transport)


def mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))
