"""Repositories: DB CRUD operations + Pydantic conversion.

Repositories flush but never commit; the request handler owns the
transaction.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.access_tables import MealPlanAccessRow, ShareLinkRow
from src.db.meal_plan_tables import MealPlanRow, MealRow
from src.db.tables import UserRow
from src.errors import NotFoundError
from src.models import Meal, MealPlan, MealPlanAccess, Role, ShareLink, User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_user(row: UserRow) -> User:
    return User(id=row.id, external_id=row.external_id, email=row.email or "", name=row.name or "")


def _row_to_plan(row: MealPlanRow) -> MealPlan:
    return MealPlan(
        id=row.id,
        name=row.name,
        description=row.description or "",
        created_by=row.created_by,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _row_to_meal(row: MealRow) -> Meal:
    return Meal(
        id=row.id,
        meal_plan_id=row.meal_plan_id,
        name=row.name,
        description=row.description or "",
        day=row.day,
        meal_type=row.meal_type,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _row_to_access(row: MealPlanAccessRow) -> MealPlanAccess:
    return MealPlanAccess(id=row.id, user_id=row.user_id, meal_plan_id=row.meal_plan_id, role=Role(row.role))


def _row_to_share_link(row: ShareLinkRow) -> ShareLink:
    return ShareLink(
        code=row.code,
        meal_plan_id=row.meal_plan_id,
        created_by=row.created_by,
        role=Role(row.role),
        expires_at=_aware(row.expires_at),
        created_at=_aware(row.created_at),
    )


class UserRepository:
    """Identity store: Google subject → internal user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find(self, user_id: str) -> Optional[User]:
        row = await self.session.get(UserRow, user_id)
        return _row_to_user(row) if row else None

    async def get(self, user_id: str) -> User:
        user = await self.find(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def find_by_external_id(self, external_id: str) -> Optional[User]:
        stmt = select(UserRow).where(UserRow.external_id == external_id)
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row else None

    async def find_by_email(self, email: str) -> Optional[User]:
        stmt = (
            select(UserRow)
            .where(func.lower(UserRow.email) == email.strip().lower())
            .order_by(UserRow.created_at)
            .limit(1)
        )
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row else None

    async def list_by_ids(self, user_ids: list[str]) -> dict[str, User]:
        if not user_ids:
            return {}
        rows = (await self.session.execute(
            select(UserRow).where(UserRow.id.in_(user_ids))
        )).scalars().all()
        return {r.id: _row_to_user(r) for r in rows}

    async def upsert_external(self, external_id: str, email: str, name: str) -> tuple[User, bool]:
        """Create-or-fetch on external_id, refreshing email/name. Returns (user, created)."""
        stmt = select(UserRow).where(UserRow.external_id == external_id)
        row = (await self.session.execute(stmt)).scalar_one_or_none()
        created = row is None
        if created:
            row = UserRow(id=str(uuid.uuid4()), external_id=external_id, email=email or "", name=name or "")
            self.session.add(row)
        else:
            if email:
                row.email = email
            if name:
                row.name = name
            row.last_login_at = _utcnow()
        await self.session.flush()
        return _row_to_user(row), created


class MealPlanRepository:
    """CRUD over plans and the meals inside them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Plans ────────────────────────────────────────────────────────────

    async def create_meal_plan(self, name: str, description: str, created_by: str) -> MealPlan:
        """Insert a plan plus the creator's owner grant in the same unit of work."""
        now = _utcnow()
        row = MealPlanRow(
            id=str(uuid.uuid4()),
            name=name,
            description=description or "",
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.add(MealPlanAccessRow(
            id=str(uuid.uuid4()),
            user_id=created_by,
            meal_plan_id=row.id,
            role=Role.OWNER.value,
        ))
        await self.session.flush()
        return _row_to_plan(row)

    async def find_meal_plan(self, meal_plan_id: str) -> Optional[MealPlan]:
        row = await self.session.get(MealPlanRow, meal_plan_id)
        return _row_to_plan(row) if row else None

    async def get_meal_plan(self, meal_plan_id: str) -> MealPlan:
        plan = await self.find_meal_plan(meal_plan_id)
        if plan is None:
            raise NotFoundError("Meal plan not found")
        return plan

    async def list_meal_plans_for_user(self, user_id: str) -> list[MealPlan]:
        """Plans the user created or holds any grant on, most recently updated first."""
        granted = select(MealPlanAccessRow.meal_plan_id).where(MealPlanAccessRow.user_id == user_id)
        stmt = (
            select(MealPlanRow)
            .where(or_(MealPlanRow.created_by == user_id, MealPlanRow.id.in_(granted)))
            .order_by(MealPlanRow.updated_at.desc(), MealPlanRow.created_at.desc())
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [_row_to_plan(r) for r in rows]

    async def update_meal_plan(self, meal_plan_id: str, name: str, description: str) -> MealPlan:
        row = await self.session.get(MealPlanRow, meal_plan_id)
        if row is None:
            raise NotFoundError("Meal plan not found")
        row.name = name
        row.description = description or ""
        row.updated_at = _utcnow()
        await self.session.flush()
        return _row_to_plan(row)

    async def delete_meal_plan(self, meal_plan_id: str) -> None:
        """Remove the plan row only; meals, grants and share links stay behind."""
        row = await self.session.get(MealPlanRow, meal_plan_id)
        if row is None:
            raise NotFoundError("Meal plan not found")
        await self.session.delete(row)
        await self.session.flush()

    # ── Meals ────────────────────────────────────────────────────────────

    async def create_meal(
        self,
        meal_plan_id: str,
        name: str,
        description: str,
        day: str,
        meal_type: str,
    ) -> Meal:
        now = _utcnow()
        row = MealRow(
            id=str(uuid.uuid4()),
            meal_plan_id=meal_plan_id,
            name=name,
            description=description or "",
            day=day,
            meal_type=meal_type,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return _row_to_meal(row)

    async def get_meal(self, meal_id: str) -> Meal:
        row = await self.session.get(MealRow, meal_id)
        if row is None:
            raise NotFoundError("Meal not found")
        return _row_to_meal(row)

    async def list_meals_by_plan(self, meal_plan_id: str) -> list[Meal]:
        stmt = (
            select(MealRow)
            .where(MealRow.meal_plan_id == meal_plan_id)
            .order_by(MealRow.created_at, MealRow.id)
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [_row_to_meal(r) for r in rows]

    async def update_meal(
        self,
        meal_id: str,
        name: str,
        description: str,
        day: str,
        meal_type: str,
    ) -> Meal:
        row = await self.session.get(MealRow, meal_id)
        if row is None:
            raise NotFoundError("Meal not found")
        row.name = name
        row.description = description or ""
        row.day = day
        row.meal_type = meal_type
        row.updated_at = _utcnow()
        await self.session.flush()
        return _row_to_meal(row)

    async def delete_meal(self, meal_id: str) -> None:
        row = await self.session.get(MealRow, meal_id)
        if row is None:
            raise NotFoundError("Meal not found")
        await self.session.delete(row)
        await self.session.flush()


class AccessRepository:
    """SQL-backed store behind the access control ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._plans = MealPlanRepository(session)
        self._users = UserRepository(session)

    async def find_meal_plan(self, meal_plan_id: str) -> Optional[MealPlan]:
        return await self._plans.find_meal_plan(meal_plan_id)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        return await self._users.find_by_email(email)

    async def list_grants(self, user_id: str, meal_plan_id: str) -> list[MealPlanAccess]:
        stmt = select(MealPlanAccessRow).where(
            MealPlanAccessRow.user_id == user_id,
            MealPlanAccessRow.meal_plan_id == meal_plan_id,
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [_row_to_access(r) for r in rows]

    async def list_plan_grants(self, meal_plan_id: str) -> list[MealPlanAccess]:
        stmt = select(MealPlanAccessRow).where(MealPlanAccessRow.meal_plan_id == meal_plan_id)
        rows = (await self.session.execute(stmt)).scalars().all()
        return [_row_to_access(r) for r in rows]

    async def add_grant(self, grant: MealPlanAccess) -> MealPlanAccess:
        self.session.add(MealPlanAccessRow(
            id=grant.id,
            user_id=grant.user_id,
            meal_plan_id=grant.meal_plan_id,
            role=grant.role.value,
        ))
        await self.session.flush()
        return grant

    async def find_share_link(self, code: str) -> Optional[ShareLink]:
        row = await self.session.get(ShareLinkRow, code)
        return _row_to_share_link(row) if row else None

    async def add_share_link(self, link: ShareLink) -> ShareLink:
        self.session.add(ShareLinkRow(
            code=link.code,
            meal_plan_id=link.meal_plan_id,
            created_by=link.created_by,
            role=link.role.value,
            expires_at=link.expires_at,
            created_at=link.created_at,
        ))
        await self.session.flush()
        return link
