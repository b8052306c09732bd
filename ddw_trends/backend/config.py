from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import find_dotenv, load_dotenv


DEFAULT_CREDENTIALS_DATE_FIELD = "breach.first_observed_at.timestamp"


class ConfigurationError(RuntimeError):
    """Raised when a route is called without its upstream URL or API key."""


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    """Upstream endpoints, credentials and tuning knobs.

    Built once per process from the environment (and a local .env file),
    then handed explicitly to the monthly orchestrator.
    """

    threat_api_url: Optional[str] = None
    api_key: Optional[str] = None
    threat_scroll_url: Optional[str] = None
    credentials_api_url: Optional[str] = None
    credentials_scroll_url: Optional[str] = None
    credentials_date_field: str = DEFAULT_CREDENTIALS_DATE_FIELD
    throttle_seconds: float = 0.25
    upstream_timeout: float = 30.0
    allowed_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(find_dotenv(usecwd=True))
        origins = _env("ALLOWED_ORIGINS") or "*"
        return cls(
            threat_api_url=_env("THREAT_API_URL"),
            api_key=_env("THREAT_API_KEY"),
            threat_scroll_url=_env("THREAT_SCROLL_URL"),
            credentials_api_url=_env("CREDENTIALS_API_URL"),
            credentials_scroll_url=_env("CREDENTIALS_SCROLL_URL"),
            credentials_date_field=_env("CRED_DATE_FIELD") or DEFAULT_CREDENTIALS_DATE_FIELD,
            throttle_seconds=float(_env("THROTTLE_SECONDS") or 0.25),
            upstream_timeout=float(_env("UPSTREAM_TIMEOUT") or 30.0),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def mentions_configured(self) -> bool:
        return bool(self.threat_api_url and self.api_key)

    @property
    def credentials_configured(self) -> bool:
        return bool(self.credentials_api_url and self.api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
