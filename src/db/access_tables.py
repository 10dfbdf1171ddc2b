"""Sharing tables: per-user grants and invite codes."""
from __future__ import annotations

from sqlalchemy import Column, String, DateTime, Index

from src.db.tables import Base, _new_id, _utcnow


class MealPlanAccessRow(Base):
    """Grant of a role on a plan. A (user_id, meal_plan_id) pair may repeat."""
    __tablename__ = "meal_plan_access"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False, index=True)
    meal_plan_id = Column(String(36), nullable=False, index=True)
    role = Column(String(10), nullable=False)  # owner, editor, viewer

    __table_args__ = (
        Index("ix_access_user_plan", "user_id", "meal_plan_id"),
    )


class ShareLinkRow(Base):
    """Multi-use invite code; expiry is checked on redemption, rows are never purged."""
    __tablename__ = "share_links"

    code = Column(String(36), primary_key=True, default=_new_id)
    meal_plan_id = Column(String(36), nullable=False, index=True)
    created_by = Column(String(36), nullable=False)
    role = Column(String(10), nullable=False)  # editor, viewer
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
