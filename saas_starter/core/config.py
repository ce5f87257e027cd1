# saas_starter/core/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv, find_dotenv


class ConfigError(RuntimeError):
    """Raised when the process cannot start with the given environment."""


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    auth_secret: str
    database_url: str = "sqlite:///./saas_starter.db"
    base_url: str = "http://localhost:8000"

    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    session_ttl_hours: int = 24
    session_cookie_secure: bool = True

    enable_create_all: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from the process environment.
        A .env file (cwd lookup, or `env_file`) is loaded first without
        overriding variables that are already set.
        """
        load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

        secret = (os.getenv("AUTH_SECRET") or "").strip()
        if not secret:
            raise ConfigError("AUTH_SECRET must be set; refusing to start without a session signing key")

        return cls(
            auth_secret=secret,
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            base_url=os.getenv("BASE_URL", cls.base_url).rstrip("/"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", str(cls.session_ttl_hours))),
            session_cookie_secure=_bool_env("SESSION_COOKIE_SECURE", True),
            enable_create_all=_bool_env("ENABLE_CREATE_ALL", True),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
