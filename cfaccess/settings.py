from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"

REQUIRED_VARS = ("ACCOUNTID", "RULEID", "CRON", "AUTH_TOKEN")


class ConfigurationMissing(Exception):
    """One or more required environment variables are not set."""

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(f"Required environment variable(s) not set: {', '.join(self.names)}")


def _env_str(env: Mapping[str, str], name: str) -> str | None:
    raw = env.get(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    account_id: str
    rule_id: str
    cron: str
    auth_token: str

    # Notifications (optional)
    notification_url: str | None = None
    notification_identifier: str | None = None
    test_notification: bool = False

    # Process
    health_port: int = 8080
    log_level: str = "INFO"

    # Cloudflare API
    api_base: str = CLOUDFLARE_API_BASE
    api_timeout_s: float = 10.0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from the environment.

        Raises ConfigurationMissing naming every required variable that is unset
        or blank.
        """
        env = os.environ if env is None else env
        missing = [name for name in REQUIRED_VARS if not _env_str(env, name)]
        if missing:
            raise ConfigurationMissing(missing)

        return cls(
            account_id=_env_str(env, "ACCOUNTID"),
            rule_id=_env_str(env, "RULEID"),
            cron=_env_str(env, "CRON"),
            auth_token=_env_str(env, "AUTH_TOKEN"),
            notification_url=_env_str(env, "NOTIFICATION_URL"),
            notification_identifier=_env_str(env, "NOTIFICATION_IDENTIFIER"),
            test_notification=_env_bool(env, "TEST_NOTIFICATION", False),
            health_port=_env_int(env, "HEALTH_PORT", 8080),
            log_level=(_env_str(env, "LOG_LEVEL") or "INFO").upper(),
            api_base=(_env_str(env, "CLOUDFLARE_API_BASE") or CLOUDFLARE_API_BASE).rstrip("/"),
            api_timeout_s=_env_float(env, "API_TIMEOUT", 10.0),
        )

    def secrets(self) -> list[str]:
        """Values that must never show up in logs."""
        return [s for s in (self.auth_token, self.notification_url) if s]
