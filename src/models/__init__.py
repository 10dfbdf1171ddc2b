"""Pydantic models shared by the API, repositories and services."""
from src.models.meal_plan import (  # noqa: F401
    SHAREABLE_ROLES,
    Meal,
    MealPlan,
    MealPlanAccess,
    Member,
    Role,
    ShareLink,
    User,
)
