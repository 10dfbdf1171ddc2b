"""JWT bearer tokens for the meal planner: issue, validate, FastAPI dependencies."""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config.settings import settings
from src.db.engine import read_scope
from src.db.repository import UserRepository
from src.errors import AuthError

logger = logging.getLogger(__name__)

_JWT_ALGO = "HS256"


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def b64url_decode(s: str) -> bytes:
    s += "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s)


class TokenService:
    """HS256 JWT (no PyJWT dependency). Claims: sub, iat, exp, jti."""

    def __init__(self, secret: str, ttl_seconds: int, clock: Callable[[], float] = time.time):
        self._secret = secret.encode()
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def _signature(self, signing_input: bytes) -> bytes:
        return hmac.new(self._secret, signing_input, hashlib.sha256).digest()

    def issue(self, user_id: str) -> str:
        now = int(self.clock())
        header = b64url(json.dumps({"alg": _JWT_ALGO, "typ": "JWT"}).encode())
        body = b64url(json.dumps({
            "sub": user_id,
            "iat": now,
            "exp": now + self.ttl_seconds,
            "jti": uuid.uuid4().hex,
        }).encode())
        sig = self._signature(f"{header}.{body}".encode())
        return f"{header}.{body}.{b64url(sig)}"

    def validate(self, token: str) -> str:
        """Return the user id carried by ``token`` or raise AuthError."""
        parts = token.split(".") if token else []
        if len(parts) != 3:
            raise AuthError("Invalid token")
        try:
            header = json.loads(b64url_decode(parts[0]))
            actual = b64url_decode(parts[2])
            payload = json.loads(b64url_decode(parts[1]))
        except (binascii.Error, ValueError):
            raise AuthError("Invalid token")

        if not isinstance(header, dict) or header.get("alg") != _JWT_ALGO:
            raise AuthError("Invalid token")
        expected = self._signature(f"{parts[0]}.{parts[1]}".encode())
        if not hmac.compare_digest(expected, actual):
            raise AuthError("Invalid token")
        if not isinstance(payload, dict):
            raise AuthError("Invalid token")
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or exp < self.clock():
            raise AuthError("Token expired")
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise AuthError("Invalid token")
        return sub


tokens = TokenService(settings.JWT_SECRET, settings.JWT_TTL_HOURS * 3600)


def issue_token(user_id: str) -> str:
    return tokens.issue(user_id)


def validate_token(token: str) -> str:
    return tokens.validate(token)


# ---- FastAPI dependency ----

_bearer = HTTPBearer(auto_error=False)


async def require_user_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """Resolve the bearer token to the id of a user that still exists.

    The user lookup takes the read lock and releases it before the route's
    own session dependency is resolved, so declare this dependency first.
    """
    if not creds:
        raise AuthError("Authentication required")
    try:
        user_id = validate_token(creds.credentials)
    except AuthError as exc:
        logger.info("Rejected bearer token: %s", exc.message)
        raise
    async with read_scope() as session:
        user = await UserRepository(session).find(user_id)
    if user is None:
        logger.info("Rejected bearer token for unknown user %s", user_id)
        raise AuthError("User not found")
    return user_id
