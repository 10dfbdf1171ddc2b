"""Google sign-in routes: redirect flow and client-side credential flow."""
from __future__ import annotations

import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.db.engine import write_scope, write_session
from src.errors import ValidationError
from src.models import User
from src.services import identity
from src.services.google_oauth import GoogleOAuthClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google", tags=["auth"])

STATE_COOKIE = "oauth_state"
STATE_TTL_SECONDS = 300


def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient.from_settings()


class CredentialRequest(BaseModel):
    credential: str = ""


class LoginResponse(BaseModel):
    token: str
    user: User


@router.get("/login")
async def google_login(oauth: GoogleOAuthClient = Depends(get_oauth_client)):
    """Start the OAuth dance: set a CSRF state cookie and bounce to Google."""
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(oauth.authorization_url(state), status_code=307)
    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        max_age=STATE_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        path="/",
    )
    return response


@router.get("/callback")
async def google_callback(
    request: Request,
    state: str = Query(""),
    code: str = Query(""),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
):
    """Finish the redirect flow and send the browser back to the app with a token.

    The store is only locked once Google has answered.
    """
    if not state:
        raise ValidationError("State parameter missing")
    cookie_state = request.cookies.get(STATE_COOKIE)
    if not cookie_state:
        raise ValidationError("State cookie missing")
    if not secrets.compare_digest(cookie_state, state):
        logger.warning("OAuth state mismatch")
        raise ValidationError("State mismatch")
    if not code:
        raise ValidationError("Authorization code missing")

    access_token = await oauth.exchange_code(code)
    profile = await oauth.fetch_profile(access_token)
    async with write_scope() as session:
        _, token = await identity.login(session, profile)

    response = RedirectResponse(
        f"{settings.FRONTEND_URL}?{urlencode({'token': token})}",
        status_code=307,
    )
    response.delete_cookie(STATE_COOKIE, path="/")
    return response


@router.post("/callback", response_model=LoginResponse)
async def google_credential_callback(
    req: CredentialRequest,
    session: AsyncSession = Depends(write_session),
):
    """Client-side flow: the Google Sign-In button hands us an ID token."""
    if not req.credential:
        raise ValidationError("Missing credential")
    profile = GoogleOAuthClient.decode_id_token(req.credential)
    user, token = await identity.login(session, profile)
    return LoginResponse(token=token, user=user)
