"""Meal plan API: CRUD, sharing by email, invite links."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.auth import require_user_id
from src.db.engine import read_session, write_session
from src.db.repository import AccessRepository, MealPlanRepository, UserRepository
from src.errors import ValidationError
from src.models import MealPlan, Member, Role
from src.models.meal_plan import CamelModel
from src.services.access_control import AccessLedger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meal-plans", tags=["meal-plans"])


def _ledger(session: AsyncSession) -> AccessLedger:
    return AccessLedger.from_settings(AccessRepository(session))


# ── Models ──────────────────────────────────────────────────────────────

class MealPlanRequest(CamelModel):
    name: str = ""
    description: str = ""


class ShareRequest(CamelModel):
    meal_plan_id: str = ""
    email: str = ""
    role: str = ""


class GenerateLinkRequest(CamelModel):
    meal_plan_id: str = ""
    role: Optional[str] = None
    expires_in: Optional[int] = None  # hours


class GenerateLinkResponse(CamelModel):
    share_link: str
    code: str
    role: Role
    expires_at: datetime


class JoinRequest(CamelModel):
    code: str = ""


class JoinResponse(CamelModel):
    message: str
    meal_plan: MealPlan
    role: Role


def _require_name(req: MealPlanRequest) -> str:
    name = req.name.strip()
    if not name:
        raise ValidationError("Name is required")
    return name


# ── CRUD ────────────────────────────────────────────────────────────────

@router.get("", response_model=list[MealPlan])
async def list_meal_plans(
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(read_session),
):
    """Every plan the caller created or was invited to."""
    return await MealPlanRepository(session).list_meal_plans_for_user(user_id)


@router.post("", response_model=MealPlan, status_code=201)
async def create_meal_plan(
    req: MealPlanRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    plan = await MealPlanRepository(session).create_meal_plan(
        name=_require_name(req),
        description=req.description,
        created_by=user_id,
    )
    await session.commit()
    logger.info("User %s created plan %s", user_id, plan.id)
    return plan


@router.get("/{meal_plan_id}", response_model=MealPlan)
async def get_meal_plan(
    meal_plan_id: str,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(read_session),
):
    plan, _ = await _ledger(session).require(user_id, meal_plan_id, "view")
    return plan


@router.put("/{meal_plan_id}", response_model=MealPlan)
async def update_meal_plan(
    meal_plan_id: str,
    req: MealPlanRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    await _ledger(session).require(user_id, meal_plan_id, "edit")
    plan = await MealPlanRepository(session).update_meal_plan(
        meal_plan_id, name=_require_name(req), description=req.description,
    )
    await session.commit()
    return plan


@router.delete("/{meal_plan_id}", status_code=204)
async def delete_meal_plan(
    meal_plan_id: str,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    """Delete the plan. Its meals, grants and share links are left in place."""
    await _ledger(session).require(user_id, meal_plan_id, "delete")
    await MealPlanRepository(session).delete_meal_plan(meal_plan_id)
    await session.commit()
    logger.info("User %s deleted plan %s", user_id, meal_plan_id)


@router.get("/{meal_plan_id}/members", response_model=list[Member])
async def list_members(
    meal_plan_id: str,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(read_session),
):
    """Who can see this plan, one row per user with their highest role."""
    ledger = _ledger(session)
    await ledger.require(user_id, meal_plan_id, "view")
    roles = await ledger.members(meal_plan_id)
    users = await UserRepository(session).list_by_ids(list(roles))
    members = [
        Member(
            user_id=uid,
            email=users[uid].email if uid in users else None,
            name=users[uid].name if uid in users else None,
            role=role,
        )
        for uid, role in roles.items()
    ]
    members.sort(key=lambda m: (-m.role.rank, m.email or ""))
    return members


# ── Sharing ─────────────────────────────────────────────────────────────

@router.post("/share")
async def share_meal_plan(
    req: ShareRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    """Grant a registered user (looked up by email) editor or viewer access."""
    if not req.meal_plan_id or not req.email:
        raise ValidationError("Meal plan ID and email are required")
    await _ledger(session).share_with_user(req.meal_plan_id, user_id, req.email, req.role)
    await session.commit()
    return {"message": "Meal plan shared successfully"}


@router.post("/generate-link", response_model=GenerateLinkResponse)
async def generate_share_link(
    req: GenerateLinkRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    """Mint an invite code the owner can hand to anyone."""
    if not req.meal_plan_id:
        raise ValidationError("Meal plan ID is required")
    link = await _ledger(session).create_share_link(
        req.meal_plan_id, user_id, role=req.role, ttl_hours=req.expires_in,
    )
    await session.commit()
    return GenerateLinkResponse(
        share_link=f"{settings.FRONTEND_URL}/join/{link.code}",
        code=link.code,
        role=link.role,
        expires_at=link.expires_at,
    )


@router.post("/join", response_model=JoinResponse)
async def join_meal_plan(
    req: JoinRequest,
    user_id: str = Depends(require_user_id),
    session: AsyncSession = Depends(write_session),
):
    """Redeem an invite code."""
    code = req.code.strip()
    if not code:
        raise ValidationError("Share code is required")
    plan, role = await _ledger(session).redeem_share_link(code, user_id)
    await session.commit()
    return JoinResponse(message="Successfully joined meal plan", meal_plan=plan, role=role)
