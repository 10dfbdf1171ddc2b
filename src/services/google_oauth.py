"""Google OAuth 2.0: consent URL, code exchange, user info, Sign-In credentials."""
from __future__ import annotations

import json
import logging
import binascii
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from config.settings import settings
from src.auth import b64url_decode
from src.errors import AuthError, ConfigurationError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


@dataclass
class GoogleProfile:
    sub: str
    email: str = ""
    name: str = ""

    @classmethod
    def from_claims(cls, claims: dict) -> "GoogleProfile":
        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            raise AuthError("Google profile has no subject")
        return cls(sub=sub, email=claims.get("email") or "", name=claims.get("name") or "")


class GoogleOAuthClient:
    def __init__(self, client_id: str, client_secret: str, redirect_url: str, timeout: float = 10.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "GoogleOAuthClient":
        return cls(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            redirect_url=settings.OAUTH_REDIRECT_URL,
            timeout=settings.OAUTH_HTTP_TIMEOUT,
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id)

    def authorization_url(self, state: str) -> str:
        """Consent page URL; offline access + forced consent so Google issues a refresh token."""
        if not self.configured:
            raise ConfigurationError("OAuth configuration is not available")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_url,
                    },
                )
        except httpx.HTTPError as exc:
            logger.error("Google token exchange failed: %s", exc)
            raise AuthError("Failed to exchange code for token")

        if resp.status_code != 200:
            logger.error("Google token exchange failed %s: %s", resp.status_code, resp.text)
            raise AuthError("Failed to exchange code for token")
        access_token = resp.json().get("access_token")
        if not access_token:
            raise AuthError("Failed to exchange code for token")
        return access_token

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            logger.error("Google user info request failed: %s", exc)
            raise AuthError("Failed to get user info")

        if resp.status_code != 200:
            logger.error("Google user info error %s: %s", resp.status_code, resp.text)
            raise AuthError("Failed to get user info")
        return GoogleProfile.from_claims(resp.json())

    @staticmethod
    def decode_id_token(credential: str) -> GoogleProfile:
        """Read the claims of a Google Sign-In ID token.

        The signature is not checked against Google's keys; the payload is
        trusted as delivered by the client.
        """
        parts = credential.split(".")
        if len(parts) != 3:
            raise AuthError("Invalid ID token format")
        try:
            claims = json.loads(b64url_decode(parts[1]))
        except (binascii.Error, ValueError):
            raise AuthError("Invalid token payload")
        if not isinstance(claims, dict):
            raise AuthError("Invalid token payload")
        return GoogleProfile.from_claims(claims)
