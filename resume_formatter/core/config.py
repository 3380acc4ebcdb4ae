from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# Named credential slots read into the rotation pool, in priority order.
CREDENTIAL_ENV_NAMES = (
    "OPENAI_API_KEY",
    "OPENAI_API_KEY_2",
    "OPENAI_API_KEY_3",
    "OPENAI_API_KEY_4",
    "OPENAI_API_KEY_5",
)


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def load_credential_pool() -> tuple[str, ...]:
    pool: list[str] = []
    for name in CREDENTIAL_ENV_NAMES:
        value = (_get_env(name) or "").strip()
        if not value or _looks_like_placeholder(value) or value in pool:
            continue
        pool.append(value)
    return tuple(pool)


@dataclass(frozen=True)
class Settings:
    log_level: str
    sentry_dsn: str | None
    rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    cors_allow_credentials: bool
    openai_base_url: str | None
    openai_timeout_s: float
    max_upload_mb: int
    session_ttl_minutes: int
    session_purge_interval_s: int

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings(
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    openai_base_url=_get_env("OPENAI_BASE_URL"),
    openai_timeout_s=float(_get_env("OPENAI_TIMEOUT_S", "90") or "90"),
    max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 10),
    session_ttl_minutes=_get_env_int("SESSION_TTL_MINUTES", 60),
    session_purge_interval_s=_get_env_int("SESSION_PURGE_INTERVAL_S", 300),
)

if settings.max_upload_mb < 1:
    raise RuntimeError("MAX_UPLOAD_MB must be at least 1.")
