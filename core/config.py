"""Runtime settings for the session service.

APP_ENV picks a profile (dev, staging, production) that supplies defaults;
individual environment variables override any profile value.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///./group_runs.db"


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    log_level: str = "INFO"

    # Remote club backend (sessions published by clubs)
    remote_api_url: str = ""
    remote_api_timeout_seconds: float = 10.0

    # HTTP surface
    cors_origins: tuple[str, ...] = ("*",)
    request_id_header_name: str = "X-Request-ID"

    # Bundled example sessions shown alongside user-authored ones
    seed_sessions_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
        "remote_api_timeout_seconds": 30.0,
    },
    "staging": {
        "log_level": "INFO",
        "remote_api_timeout_seconds": 10.0,
    },
    "production": {
        "log_level": "WARNING",
        "remote_api_timeout_seconds": 5.0,
        "seed_sessions_enabled": False,
    },
}


def get_database_url() -> str:
    """DATABASE_URL when set, else a SQLite file in the working directory."""
    return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_origins(default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return default
    return tuple(o.strip() for o in raw.split(",") if o.strip())


def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        remote_api_url=os.getenv("REMOTE_API_URL", ""),
        remote_api_timeout_seconds=float(
            os.getenv("REMOTE_API_TIMEOUT_SECONDS", str(profile.get("remote_api_timeout_seconds", 10.0)))
        ),
        cors_origins=_env_origins(("*",)),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID"),
        seed_sessions_enabled=_env_bool("SEED_SESSIONS_ENABLED", profile.get("seed_sessions_enabled", True)),
    )
