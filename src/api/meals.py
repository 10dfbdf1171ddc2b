"""Meal API: meals live inside a plan and inherit its access rules."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import require_user_id
from src.db.engine import read_session, write_session
from src.db.repository import AccessRepository, MealPlanRepository
from src.errors import ValidationError
from src.models import Meal
from src.models.meal_plan import CamelModel
from src.services.access_control import AccessLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meals", tags=["meals"])


class MealRequest(CamelModel):
    name: str = ""
    description: str = ""
    day: str = ""
    meal_type: str = ""

    def validated(self) -> "MealRequest":
        if not self.name.strip() or not self.day.strip() or not self.meal_type.strip():
            raise ValidationError("Name, day, and meal type are required")
        return self


class CreateMealRequest(CamelModel):
    meal_plan_id: str = ""
    meal: MealRequest = Field(default_factory=MealRequest)


def _ledger(session: AsyncSession) -> AccessLedger:
    return AccessLedger.from_settings(AccessRepository(session))


@router.get("", response_model=list[Meal])
async def list_meals(
    meal_plan_id: str = Query("", alias="mealPlanId"),
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(read_session),
):
    if not meal_plan_id:
        raise ValidationError("Meal plan ID is required")
    await _ledger(session).require(user_id, meal_plan_id, "view")
    return await MealPlanRepository(session).list_meals_by_plan(meal_plan_id)


@router.post("", response_model=Meal, status_code=201)
async def create_meal(
    req: CreateMealRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    if not req.meal_plan_id:
        raise ValidationError("Meal plan ID is required")
    meal_req = req.meal.validated()
    await _ledger(session).require(user_id, req.meal_plan_id, "edit")
    meal = await MealPlanRepository(session).create_meal(
        meal_plan_id=req.meal_plan_id,
        name=meal_req.name,
        description=meal_req.description,
        day=meal_req.day,
        meal_type=meal_req.meal_type,
    )
    await session.commit()
    logger.info("User %s added meal %s to plan %s", user_id, meal.id, meal.meal_plan_id)
    return meal


@router.get("/{meal_id}", response_model=Meal)
async def get_meal(
    meal_id: str,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(read_session),
):
    meal = await MealPlanRepository(session).get_meal(meal_id)
    await _ledger(session).require(user_id, meal.meal_plan_id, "view")
    return meal


@router.put("/{meal_id}", response_model=Meal)
async def update_meal(
    meal_id: str,
    req: MealRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    req.validated()
    repo = MealPlanRepository(session)
    existing = await repo.get_meal(meal_id)
    await _ledger(session).require(user_id, existing.meal_plan_id, "edit")
    meal = await repo.update_meal(
        meal_id,
        name=req.name,
        description=req.description,
        day=req.day,
        meal_type=req.meal_type,
    )
    await session.commit()
    return meal


@router.delete("/{meal_id}", status_code=204)
async def delete_meal(
    meal_id: str,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    repo = MealPlanRepository(session)
    existing = await repo.get_meal(meal_id)
    await _ledger(session).require(user_id, existing.meal_plan_id, "edit")
    await repo.delete_meal(meal_id)
    await session.commit()
