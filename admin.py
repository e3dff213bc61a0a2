"""Admin overview and announcements."""
from __future__ import annotations

from typing import Any, Dict, List

import paths
from accounts import Viewer, require_admin
from schemas import AnnouncementCreate

RECENT_ACTIVITY_COUNT = 5


def overview(ctx, viewer: Viewer) -> Dict[str, Any]:
    require_admin(viewer)
    store = ctx.store

    users = store.list(paths.USERS)
    closures = store.list(paths.CLOSURES)
    names = {u["id"]: u.get("name") for u in users}

    activities = store.list(paths.ACTIVITIES, order_by="timestamp", descending=True, limit=RECENT_ACTIVITY_COUNT)
    return {
        "stats": {
            "totalEmployees": len(users),
            "activeEmployees": sum(1 for u in users if u.get("isActive")),
            "totalProspects": store.count(paths.PROSPECTS),
            "totalMeetings": store.count(paths.MEETINGS),
            "totalRevenue": sum(c.get("amount") or 0 for c in closures),
        },
        "recentActivities": [
            {
                "id": a["id"],
                "type": a.get("type"),
                "description": a.get("description"),
                "timestamp": a.get("timestamp"),
                "userId": a.get("userId"),
                "userName": names.get(a.get("userId")) or "Unknown User",
            }
            for a in activities
        ],
    }


def create_announcement(ctx, viewer: Viewer, payload: AnnouncementCreate) -> Dict[str, Any]:
    require_admin(viewer)
    data = {**payload.to_document(), "createdAt": ctx.now(), "createdBy": viewer.uid}
    announcement_id = ctx.store.add(paths.ANNOUNCEMENTS, data)
    return {"id": announcement_id, **data}


def list_announcements(ctx, limit: int = 20) -> List[Dict[str, Any]]:
    return ctx.store.list(paths.ANNOUNCEMENTS, order_by="createdAt", descending=True, limit=limit)
