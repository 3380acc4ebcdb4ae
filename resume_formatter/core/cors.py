from __future__ import annotations

from resume_formatter.core.config import settings


def cors_allowed_origins() -> list[str]:
    return list(settings.cors_allowed_origins)


def cors_allow_credentials() -> bool:
    # Browsers reject a wildcard origin combined with credentials.
    return settings.cors_allow_credentials and "*" not in settings.cors_allowed_origins
