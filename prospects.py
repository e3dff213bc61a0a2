"""Prospects owned by a user: ``pending`` until marked ``converted`` or ``lost``."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import paths
from errors import InvalidTransitionError, NotFoundError
from periods import months_before, start_of_day
from schemas import ProspectEntry

logger = logging.getLogger(__name__)

# Allowed status changes; converted and lost are final
TRANSITIONS = {
    "pending": ("converted", "lost"),
}


def add_prospect(ctx, uid: str, entry: ProspectEntry, report_date: Optional[str] = None) -> Dict[str, Any]:
    now = ctx.now()
    data = {
        **entry.to_document(),
        "userId": uid,
        "dateAdded": now,
        "status": "pending",
        "reportDate": report_date,
        "updatedAt": now,
    }
    prospect_id = ctx.store.add(paths.prospects(uid), data)
    return {"id": prospect_id, **data}


def _window_start(now: datetime, window: str) -> datetime:
    if window == "today":
        return start_of_day(now, now.tzinfo)
    if window == "week":
        return now - timedelta(days=7)
    if window == "month":
        return datetime.combine(months_before(now), now.timetz())
    raise ValueError(f"Unknown date window: {window}")


def list_prospects(
    ctx,
    uid: str,
    status: Optional[str] = None,
    window: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Prospects newest first, optionally filtered by status, age and a search term."""
    where: Dict[str, Any] = {}
    if status:
        where["status"] = status
    if window:
        where["dateAdded"] = {"$gte": _window_start(ctx.now(), window)}
    prospects = ctx.store.list(paths.prospects(uid), where=where, order_by="dateAdded", descending=True)

    if search:
        term = search.casefold()
        prospects = [
            p
            for p in prospects
            if any(term in str(p.get(field) or "").casefold() for field in ("name", "contact", "source"))
        ]
    return prospects


def update_prospect_status(ctx, uid: str, prospect_id: str, status: str) -> Dict[str, Any]:
    path = paths.prospect(uid, prospect_id)
    prospect = ctx.store.get(path)
    if prospect is None:
        raise NotFoundError("Prospect not found")

    current = prospect.get("status") or "pending"
    if status == current:
        return {"id": prospect_id, **prospect}
    if status not in TRANSITIONS.get(current, ()):
        raise InvalidTransitionError(f"Cannot move a {current} prospect to {status}")

    changes = {"status": status, "updatedAt": ctx.now()}
    ctx.store.update(path, changes)
    logger.info("Prospect %s of %s marked %s", prospect_id, uid, status)
    return {"id": prospect_id, **prospect, **changes}
