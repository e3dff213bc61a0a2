"""Weekly/monthly accomplishment rollups (``tasksCompleted`` / ``extraTasks`` sums)."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from database import DocumentStore


def merge_rollup(
    store: DocumentStore,
    path: str,
    increment: tuple,
    seed: tuple,
    start: datetime,
    end: datetime,
    now: datetime,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Add ``increment`` to an existing rollup, or create it from ``seed``.

    Both are ``(tasks_completed, extra_tasks)`` pairs. Read and write are two
    separate round trips; concurrent callers on the same period can lose an
    update.
    """
    existing = store.get(path)
    if existing is not None:
        changes = {
            "tasksCompleted": (existing.get("tasksCompleted") or 0) + increment[0],
            "extraTasks": (existing.get("extraTasks") or 0) + increment[1],
            "updatedAt": now,
        }
        store.update(path, changes)
        return {**existing, **changes}

    data = {
        "tasksCompleted": seed[0],
        "extraTasks": seed[1],
        "startDate": start,
        "endDate": end,
        "createdAt": created_at or now,
        "updatedAt": now,
    }
    store.set(path, data)
    return data


def rollup_totals(doc: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Dashboard view of a rollup; a missing document reads as zeros."""
    doc = doc or {}
    tasks = doc.get("tasksCompleted") or 0
    extra = doc.get("extraTasks") or 0
    return {"tasksCompleted": tasks, "extraTasks": extra, "totalCompletedTasks": tasks + extra}
