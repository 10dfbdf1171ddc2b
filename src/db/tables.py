"""SQLAlchemy ORM base + user table."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import DeclarativeBase


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    """A Google-authenticated user. Created on first login, never deleted."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    external_id = Column(String(255), nullable=False, unique=True, index=True)  # Google "sub"
    email = Column(String(320), nullable=False, default="", index=True)
    name = Column(String(200), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    last_login_at = Column(DateTime(timezone=True), default=_utcnow)
