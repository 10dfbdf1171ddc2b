"""Meal plan data models: plans, meals, grants and share links.

Serialized with camelCase keys (``mealPlanId``, ``createdAt``...) to match
the web client; snake_case is accepted on input too.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Role(str, Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK = {Role.VIEWER: 1, Role.EDITOR: 2, Role.OWNER: 3}

# Roles a share link or an email invite may hand out
SHAREABLE_ROLES = (Role.EDITOR, Role.VIEWER)


class User(CamelModel):
    id: str
    external_id: str  # Google "sub"
    email: str = ""
    name: str = ""


class MealPlan(CamelModel):
    id: str
    name: str
    description: str = ""
    created_by: str
    created_at: datetime
    updated_at: datetime


class Meal(CamelModel):
    id: str
    meal_plan_id: str
    name: str
    description: str = ""
    day: str
    meal_type: str  # free text: Breakfast, Lunch, Dinner
    created_at: datetime
    updated_at: datetime


class MealPlanAccess(CamelModel):
    id: str
    user_id: str
    meal_plan_id: str
    role: Role


class ShareLink(CamelModel):
    code: str
    meal_plan_id: str
    created_by: str
    role: Role
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class Member(CamelModel):
    """One row of a plan's member list (duplicate grants collapsed)."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Role
