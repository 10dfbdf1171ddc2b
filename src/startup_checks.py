"""Startup validation: catch misconfigurations before the app serves traffic."""
from __future__ import annotations

import logging
import sys

from config.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "meal-planner-dev-secret-change-in-prod"


def validate_settings() -> list[str]:
    """Validate configuration. Returns list of warnings (empty = all good).

    Raises SystemExit for critical misconfigurations in production.
    """
    warnings: list[str] = []
    is_prod = bool(settings.DATABASE_URL) and "sqlite" not in settings.DATABASE_URL

    # Critical: JWT secret must be changed in production
    if is_prod and settings.JWT_SECRET == DEFAULT_JWT_SECRET:
        logger.critical("JWT_SECRET is still the default! Set a real secret for production.")
        sys.exit(1)

    if "*" in settings.CORS_ORIGINS:
        warnings.append("CORS_ORIGINS is set to *: credentials will not be sent cross-origin")

    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        warnings.append("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set: Google redirect login disabled")

    if settings.JWT_TTL_HOURS <= 0:
        warnings.append("JWT_TTL_HOURS must be positive: every token will be born expired")

    if settings.SHARE_LINK_TTL_HOURS <= 0:
        warnings.append("SHARE_LINK_TTL_HOURS must be positive: share links will expire immediately")

    if not settings.STRICT_ROLE_ENFORCEMENT:
        warnings.append("STRICT_ROLE_ENFORCEMENT is off: viewers can edit and delete shared plans")

    for w in warnings:
        logger.warning("%s", w)

    if not warnings:
        logger.info("All startup checks passed")

    return warnings
