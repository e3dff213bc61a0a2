"""Leaderboard and personal dashboard aggregation."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

import paths
from accounts import Viewer
from periods import period_keys
from rollups import rollup_totals

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 5
ANNOUNCEMENT_COUNT = 3
RECENT_COMMITMENTS = 5


def rank_leaderboard(entries: Iterable[Dict[str, Any]], size: int = LEADERBOARD_SIZE) -> List[Dict[str, Any]]:
    """Order by tasksCompleted, then extraTasks, both descending, and keep the top ``size``."""
    ranked = sorted(entries, key=lambda e: (-e["tasksCompleted"], -e["extraTasks"]))
    return ranked[:size]


def _entry(uid: str, name: str, rollup: Dict[str, Any], viewer: Viewer) -> Dict[str, Any]:
    return {
        "id": uid,
        "name": name,
        "tasksCompleted": rollup.get("tasksCompleted") or 0,
        "extraTasks": rollup.get("extraTasks") or 0,
        "isCurrentUser": uid == viewer.uid,
    }


def leaderboard(ctx, viewer: Viewer) -> List[Dict[str, Any]]:
    """Current-week leaderboard.

    Managers and admins see the top five across all users; this reads one
    rollup per user on every call. Everyone else sees only their own entry.
    Users without a rollup for the week are left out.
    """
    week = period_keys(ctx.now()).week

    if not viewer.is_privileged:
        own = ctx.store.get(paths.stats(viewer.uid, paths.WEEKLY_STATS, week))
        return [_entry(viewer.uid, viewer.name or "You", own, viewer)] if own is not None else []

    entries = []
    for user in ctx.store.list(paths.USERS):
        rollup = ctx.store.get(paths.stats(user["id"], paths.WEEKLY_STATS, week))
        if rollup is None:
            continue
        entries.append(_entry(user["id"], user.get("name") or "Anonymous", rollup, viewer))
    return rank_leaderboard(entries)


def dashboard(ctx, viewer: Viewer) -> Dict[str, Any]:
    keys = period_keys(ctx.now())
    uid = viewer.uid

    today = ctx.store.get(paths.commitment(uid, paths.DAILY, keys.day))
    recent = ctx.store.list(
        paths.commitment_entries(uid, paths.DAILY), order_by="id", descending=True, limit=RECENT_COMMITMENTS
    )
    announcements = ctx.store.list(
        paths.ANNOUNCEMENTS, order_by="createdAt", descending=True, limit=ANNOUNCEMENT_COUNT
    )

    return {
        "dateKeys": {"today": keys.day, "week": keys.week, "month": keys.month},
        "todaysCommitment": (
            {
                "date": keys.day,
                "target": today.get("target") or 0,
                "achieved": today.get("achieved") or 0,
                "status": today.get("status") or "pending",
            }
            if today is not None
            else None
        ),
        "weeklyStats": rollup_totals(ctx.store.get(paths.stats(uid, paths.WEEKLY_STATS, keys.week))),
        "monthlyStats": rollup_totals(ctx.store.get(paths.stats(uid, paths.MONTHLY_STATS, keys.month))),
        "recentCommitments": [
            {
                "id": c["id"],
                "date": c["id"],
                "target": c.get("target") or 0,
                "achieved": c.get("achieved") or 0,
                "status": c.get("status") or "pending",
            }
            for c in recent
        ],
        "leaderboard": leaderboard(ctx, viewer),
        "announcements": [
            {
                "id": a["id"],
                "title": a.get("title"),
                "content": a.get("content"),
                "date": a.get("createdAt"),
                "priority": a.get("priority") or "medium",
            }
            for a in announcements
        ],
    }
