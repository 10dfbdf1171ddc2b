"""Access control ledger: who may read, edit or delete which meal plan.

Rules:
- The creator of a plan is always its owner, grant or no grant.
- Any grant gives access; a grant with role "owner" gives ownership.
- Multiple grants for one (user, plan) pair are OR-ed; order is irrelevant.
- A plan that does not exist grants nothing to anyone.

Role strictness is a switch. With it off (the default) any grant may edit
and delete a plan. With it on, viewers are read-only and only owners delete.

Share links hand out editor or viewer, stay valid for many users until they
expire, and are never deleted.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from config.settings import settings
from src.errors import (
    AlreadyMemberError,
    AlreadyOwnerError,
    AuthorizationError,
    ExpiredError,
    NotFoundError,
    SelfShareError,
    ValidationError,
)
from src.models import SHAREABLE_ROLES, MealPlan, MealPlanAccess, Role, ShareLink, User

logger = logging.getLogger(__name__)

DEFAULT_SHARE_LINK_TTL_HOURS = 168  # 7 days
MAX_SHARE_LINK_TTL_HOURS = 24 * 365


class AccessStore(Protocol):
    """Storage the ledger needs. ``src.db.repository.AccessRepository`` is the SQL one."""

    async def find_meal_plan(self, meal_plan_id: str) -> Optional[MealPlan]: ...

    async def find_user_by_email(self, email: str) -> Optional[User]: ...

    async def list_grants(self, user_id: str, meal_plan_id: str) -> list[MealPlanAccess]: ...

    async def list_plan_grants(self, meal_plan_id: str) -> list[MealPlanAccess]: ...

    async def add_grant(self, grant: MealPlanAccess) -> MealPlanAccess: ...

    async def find_share_link(self, code: str) -> Optional[ShareLink]: ...

    async def add_share_link(self, link: ShareLink) -> ShareLink: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_role(role: "Role | str | None") -> Optional[Role]:
    if isinstance(role, Role):
        return role
    try:
        return Role(str(role).strip().lower())
    except ValueError:
        return None


class AccessLedger:
    def __init__(
        self,
        store: AccessStore,
        *,
        strict_roles: bool = False,
        default_link_ttl_hours: int = DEFAULT_SHARE_LINK_TTL_HOURS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.strict_roles = strict_roles
        self.default_link_ttl_hours = default_link_ttl_hours
        self.clock = clock

    @classmethod
    def from_settings(cls, store: AccessStore) -> "AccessLedger":
        return cls(
            store,
            strict_roles=settings.STRICT_ROLE_ENFORCEMENT,
            default_link_ttl_hours=settings.SHARE_LINK_TTL_HOURS,
        )

    # ── Grants ───────────────────────────────────────────────────────────

    async def grant_access(self, user_id: str, meal_plan_id: str, role: "Role | str") -> MealPlanAccess:
        """Record a grant. Not idempotent: the same pair twice gives two rows."""
        resolved = _coerce_role(role)
        if resolved is None:
            raise ValidationError(f"Unknown role: {role!r}")
        grant = MealPlanAccess(
            id=str(uuid.uuid4()),
            user_id=user_id,
            meal_plan_id=meal_plan_id,
            role=resolved,
        )
        await self.store.add_grant(grant)
        logger.info("Granted %s on plan %s to user %s", resolved.value, meal_plan_id, user_id)
        return grant

    # ── Questions ────────────────────────────────────────────────────────

    async def role_for(self, user_id: str, meal_plan_id: str, plan: Optional[MealPlan] = None) -> Optional[Role]:
        """Highest role the user holds on the plan, or None."""
        plan = plan or await self.store.find_meal_plan(meal_plan_id)
        if plan is None:
            return None
        if plan.created_by == user_id:
            return Role.OWNER
        grants = await self.store.list_grants(user_id, meal_plan_id)
        if not grants:
            return None
        return max((g.role for g in grants), key=lambda r: r.rank)

    async def has_access(self, user_id: str, meal_plan_id: str) -> bool:
        return await self.role_for(user_id, meal_plan_id) is not None

    async def is_owner(self, user_id: str, meal_plan_id: str) -> bool:
        return await self.role_for(user_id, meal_plan_id) is Role.OWNER

    def _allows(self, role: Optional[Role], action: str) -> bool:
        if role is None:
            return False
        if action == "view" or not self.strict_roles:
            return True
        if action == "edit":
            return role.rank >= Role.EDITOR.rank
        return role is Role.OWNER  # delete

    async def can_edit(self, user_id: str, meal_plan_id: str) -> bool:
        return self._allows(await self.role_for(user_id, meal_plan_id), "edit")

    async def can_delete(self, user_id: str, meal_plan_id: str) -> bool:
        return self._allows(await self.role_for(user_id, meal_plan_id), "delete")

    async def require(self, user_id: str, meal_plan_id: str, action: str = "view") -> tuple[MealPlan, Role]:
        """Load the plan and check ``action`` (view/edit/delete) for the user.

        Raises NotFoundError for an unknown plan and AuthorizationError when
        the user's role does not cover the action.
        """
        plan = await self.store.find_meal_plan(meal_plan_id)
        if plan is None:
            raise NotFoundError("Meal plan not found")
        role = await self.role_for(user_id, meal_plan_id, plan=plan)
        if not self._allows(role, action):
            logger.warning("Denied %s on plan %s to user %s (role=%s)",
                           action, meal_plan_id, user_id, role.value if role else None)
            raise AuthorizationError("Access denied")
        return plan, role

    async def members(self, meal_plan_id: str) -> dict[str, Role]:
        """user_id → highest role, creator included, duplicates collapsed."""
        plan = await self.store.find_meal_plan(meal_plan_id)
        if plan is None:
            raise NotFoundError("Meal plan not found")
        out: dict[str, Role] = {plan.created_by: Role.OWNER}
        for grant in await self.store.list_plan_grants(meal_plan_id):
            held = out.get(grant.user_id)
            if held is None or grant.role.rank > held.rank:
                out[grant.user_id] = grant.role
        return out

    # ── Sharing ──────────────────────────────────────────────────────────

    async def _require_owner(self, user_id: str, meal_plan_id: str, message: str) -> MealPlan:
        plan = await self.store.find_meal_plan(meal_plan_id)
        if plan is None:
            raise NotFoundError("Meal plan not found")
        if await self.role_for(user_id, meal_plan_id, plan=plan) is not Role.OWNER:
            logger.warning("User %s is not the owner of plan %s", user_id, meal_plan_id)
            raise AuthorizationError(message)
        return plan

    async def create_share_link(
        self,
        meal_plan_id: str,
        created_by: str,
        role: "Role | str | None" = None,
        ttl_hours: Optional[int] = None,
    ) -> ShareLink:
        """Mint an invite code. Bad roles fall back to viewer, ttl ≤ 0 to the default."""
        await self._require_owner(created_by, meal_plan_id, "Only the owner can create share links")

        resolved = _coerce_role(role)
        if resolved not in SHAREABLE_ROLES:
            resolved = Role.VIEWER
        if not ttl_hours or ttl_hours <= 0:
            ttl_hours = self.default_link_ttl_hours
        elif ttl_hours > MAX_SHARE_LINK_TTL_HOURS:
            raise ValidationError(f"Share link lifetime cannot exceed {MAX_SHARE_LINK_TTL_HOURS} hours")

        now = self.clock()
        link = ShareLink(
            code=str(uuid.uuid4()),
            meal_plan_id=meal_plan_id,
            created_by=created_by,
            role=resolved,
            expires_at=now + timedelta(hours=ttl_hours),
            created_at=now,
        )
        await self.store.add_share_link(link)
        logger.info("Share link created for plan %s (role=%s, ttl=%sh)", meal_plan_id, resolved.value, ttl_hours)
        return link

    async def redeem_share_link(self, code: str, user_id: str) -> tuple[MealPlan, Role]:
        """Join a plan through an invite code. Returns the plan and the role granted."""
        link = await self.store.find_share_link(code)
        if link is None:
            raise NotFoundError("Invalid share code")
        if link.is_expired(self.clock()):
            raise ExpiredError("Share link has expired")

        plan = await self.store.find_meal_plan(link.meal_plan_id)
        if plan is None:
            raise NotFoundError("Meal plan not found")

        held = await self.role_for(user_id, plan.id, plan=plan)
        if held is Role.OWNER:
            raise AlreadyOwnerError("You already own this meal plan")
        if held is not None:
            raise AlreadyMemberError("You already have access to this meal plan")

        await self.grant_access(user_id, plan.id, link.role)
        logger.info("User %s joined plan %s via share link", user_id, plan.id)
        return plan, link.role

    async def share_with_user(
        self,
        meal_plan_id: str,
        owner_id: str,
        target_email: str,
        role: "Role | str",
    ) -> MealPlanAccess:
        """Grant ``role`` to the user registered under ``target_email``."""
        await self._require_owner(owner_id, meal_plan_id, "Only the owner can share a meal plan")

        resolved = _coerce_role(role)
        if resolved not in SHAREABLE_ROLES:
            raise ValidationError("Invalid role. Must be 'editor' or 'viewer'")

        target = await self.store.find_user_by_email(target_email)
        if target is None:
            raise NotFoundError("User not found")
        if target.id == owner_id:
            raise SelfShareError("Cannot share with yourself")

        return await self.grant_access(target.id, meal_plan_id, resolved)
