"""Meal plan database tables.

Plan ids on child tables are plain indexed columns, not foreign keys:
deleting a plan leaves its meals, grants and share links in place.
"""
from __future__ import annotations

from sqlalchemy import Column, String, Text, DateTime, Index

from src.db.tables import Base, _new_id, _utcnow


class MealPlanRow(Base):
    """A named collection of meals, owned by its creator."""
    __tablename__ = "meal_plans"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_by = Column(String(36), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)


class MealRow(Base):
    """A single meal slot (e.g. Monday dinner) inside a plan."""
    __tablename__ = "meals"

    id = Column(String(36), primary_key=True, default=_new_id)
    meal_plan_id = Column(String(36), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    day = Column(String(20), nullable=False)
    meal_type = Column(String(50), nullable=False)  # Breakfast, Lunch, Dinner, ...

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_meals_plan_created", "meal_plan_id", "created_at"),
    )
