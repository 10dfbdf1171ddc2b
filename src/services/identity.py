"""Identity store: Google profile in, internal user + session token out."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import issue_token
from src.db.repository import UserRepository
from src.models import User
from src.services.google_oauth import GoogleProfile

logger = logging.getLogger(__name__)


async def upsert_google_user(session: AsyncSession, profile: GoogleProfile) -> User:
    """Create the user on first login; refresh email/name on later logins."""
    user, created = await UserRepository(session).upsert_external(
        external_id=profile.sub,
        email=profile.email,
        name=profile.name,
    )
    if created:
        logger.info("New user %s registered via Google", user.id)
    return user


async def login(session: AsyncSession, profile: GoogleProfile) -> tuple[User, str]:
    """Upsert the user, commit, and issue a bearer token for them."""
    user = await upsert_google_user(session, profile)
    await session.commit()
    logger.info("User %s logged in", user.id)
    return user, issue_token(user.id)
