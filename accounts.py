"""User profiles, sessions and employee administration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import paths
from errors import NotAuthorizedError, NotFoundError
from identity import Identity
from periods import end_of_month, end_of_week, month_key, start_of_month, start_of_week, week_key
from schemas import PRIVILEGED_ROLES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Viewer:
    """The authenticated caller together with the role stored in their profile."""

    uid: str
    email: Optional[str]
    name: str
    role: str = "employee"
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def require_admin(viewer: Viewer) -> None:
    if not viewer.is_admin:
        raise NotAuthorizedError("Only administrators can perform this action")


def require_privileged(viewer: Viewer) -> None:
    if not viewer.is_privileged:
        raise NotAuthorizedError("Only managers and administrators can perform this action")


def load_viewer(ctx, identity: Identity) -> Viewer:
    profile = ctx.store.get(paths.user(identity.uid)) or {}
    viewer = Viewer(
        uid=identity.uid,
        email=profile.get("email") or identity.email,
        name=profile.get("name") or identity.display_name or identity.email or "Anonymous",
        role=profile.get("role") or "employee",
        is_active=profile.get("isActive", True),
    )
    if not viewer.is_active:
        raise NotAuthorizedError("This account has been deactivated")
    return viewer


def _new_profile(uid: str, email: Optional[str], name: Optional[str], role: str, now) -> Dict[str, Any]:
    return {
        "uid": uid,
        "email": email,
        "name": name,
        "role": role,
        "joinedDate": now,
        "isActive": True,
        "lastLogin": now,
    }


def _seed_rollups(ctx, uid: str) -> None:
    """Zeroed rollups for the current week and month; existing ones are left alone."""
    now = ctx.now()
    for kind, key, start, end in (
        (paths.WEEKLY_STATS, week_key(now), start_of_week(now, tz=ctx.tz), end_of_week(now, tz=ctx.tz)),
        (paths.MONTHLY_STATS, month_key(now), start_of_month(now, ctx.tz), end_of_month(now, ctx.tz)),
    ):
        path = paths.stats(uid, kind, key)
        if ctx.store.exists(path):
            continue
        ctx.store.set(path, {"tasksCompleted": 0, "extraTasks": 0, "startDate": start, "endDate": end})


def register(ctx, email: str, password: str, name: str, role: str = "employee") -> Dict[str, Any]:
    identity = ctx.identity.create_user(email, password, name)
    profile = _new_profile(identity.uid, email, name, role, ctx.now())
    ctx.store.set(paths.user(identity.uid), profile)
    _seed_rollups(ctx, identity.uid)
    logger.info("Registered %s as %s", identity.uid, role)
    return profile


def open_session(ctx, identity: Identity) -> Dict[str, Any]:
    """Record a sign-in; creates the profile for accounts made outside this API."""
    path = paths.user(identity.uid)
    now = ctx.now()
    ctx.store.set(path, {"lastLogin": now}, merge=True)
    profile = ctx.store.get(path) or {}
    if not profile.get("uid"):
        logger.info("No profile for %s, creating one", identity.uid)
        profile = _new_profile(identity.uid, identity.email, identity.display_name, "employee", now)
        ctx.store.set(path, profile)
        _seed_rollups(ctx, identity.uid)
    return profile


def update_profile(ctx, uid: str, name: str, photo_url: Optional[str] = None) -> Dict[str, Any]:
    ctx.identity.update_user(uid, name, photo_url)
    changes: Dict[str, Any] = {"name": name, "updatedAt": ctx.now()}
    if photo_url:
        changes["profilePictureUrl"] = photo_url
    ctx.store.set(paths.user(uid), changes, merge=True)
    return ctx.store.get(paths.user(uid)) or {}


def request_password_reset(ctx, email: str) -> str:
    return ctx.identity.password_reset_link(email)


# ---------------------------
# Administration
# ---------------------------
def create_employee(ctx, viewer: Viewer, email: str, password: str, name: str, role: str) -> Dict[str, Any]:
    require_admin(viewer)
    identity = ctx.identity.create_user(email, password, name)
    profile = _new_profile(identity.uid, email, name, role, ctx.now())
    ctx.store.set(paths.user(identity.uid), profile)
    logger.info("%s added employee %s (%s)", viewer.uid, identity.uid, role)
    return profile


def list_employees(
    ctx,
    viewer: Viewer,
    search: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """All profiles ordered by name. ``status`` is ``active`` or ``inactive``."""
    require_admin(viewer)
    employees = ctx.store.list(paths.USERS, order_by="name")
    if search:
        term = search.casefold()
        employees = [
            e
            for e in employees
            if term in (e.get("name") or "").casefold() or term in (e.get("email") or "").casefold()
        ]
    if role:
        employees = [e for e in employees if e.get("role") == role]
    if status == "active":
        employees = [e for e in employees if e.get("isActive")]
    elif status == "inactive":
        employees = [e for e in employees if not e.get("isActive")]
    return employees


def get_employee_detail(ctx, viewer: Viewer, uid: str) -> Dict[str, Any]:
    require_admin(viewer)
    profile = ctx.store.get(paths.user(uid))
    if profile is None:
        raise NotFoundError("Employee not found")
    return {
        "employee": {"id": uid, **profile},
        "commitments": ctx.store.list(
            paths.commitment_entries(uid, paths.DAILY), order_by="id", descending=True
        ),
        "reports": ctx.store.list(paths.report_entries(uid), order_by="id", descending=True),
    }


def _edit_employee(ctx, viewer: Viewer, uid: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    require_admin(viewer)
    path = paths.user(uid)
    ctx.store.update(path, {**changes, "updatedAt": ctx.now()})
    return {"id": uid, **(ctx.store.get(path) or {})}


def change_role(ctx, viewer: Viewer, uid: str, role: str) -> Dict[str, Any]:
    profile = _edit_employee(ctx, viewer, uid, {"role": role})
    logger.info("%s changed role of %s to %s", viewer.uid, uid, role)
    return profile


def set_active(ctx, viewer: Viewer, uid: str, is_active: bool) -> Dict[str, Any]:
    profile = _edit_employee(ctx, viewer, uid, {"isActive": is_active})
    logger.info("%s %s %s", viewer.uid, "activated" if is_active else "deactivated", uid)
    return profile
