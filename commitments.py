"""Daily call commitments."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import paths
from errors import DuplicateSubmissionError
from periods import end_of_day, period_keys
from schemas import CommitmentCreate

logger = logging.getLogger(__name__)

ACHIEVED_STATUSES = ("achieved", "completed")
MISSED_STATUSES = ("missed", "failed")


def commitment_status(calls_made: int, target: int) -> str:
    return "achieved" if calls_made >= target else "missed"


def submit_commitment(ctx, uid: str, payload: CommitmentCreate) -> Dict[str, Any]:
    """Lock in today's call target.

    Writes the daily document plus weekly and monthly snapshots of it (the
    snapshots are overwritten, not summed). The existence check and the
    writes are separate calls, so two simultaneous submissions can both pass
    the check.
    """
    now = ctx.now()
    keys = period_keys(now)
    daily_path = paths.commitment(uid, paths.DAILY, keys.day)

    if ctx.store.exists(daily_path):
        raise DuplicateSubmissionError("You have already submitted a commitment for today")

    data = {
        "target": payload.calls_to_be_made,
        "achieved": 0,
        "startDate": now,
        "endDate": end_of_day(now, ctx.tz),
        "status": "pending",
        "weekNumber": keys.week_number,
        "expectedClosures": [c.to_document() for c in payload.expected_closures],
        "expectedMeetings": [m.to_document() for m in payload.expected_meetings],
        "expectedProspects": {"total": payload.expected_prospects.total},
        "totalExpectedRevenue": sum(c.expected_revenue for c in payload.expected_closures),
        "userId": uid,
        "date": keys.day,
        "createdAt": now,
        "updatedAt": now,
    }

    ctx.store.set(daily_path, data)
    ctx.store.set(paths.commitment(uid, paths.WEEKLY, keys.week), data)
    ctx.store.set(paths.commitment(uid, paths.MONTHLY, keys.month), data)

    logger.info("Commitment of %d calls stored for %s on %s", data["target"], uid, keys.day)
    return {"id": keys.day, **data}


def get_commitment(ctx, uid: str, date_key: str) -> Dict[str, Any]:
    """Commitment and report for one day; either may be ``None``."""
    commitment = ctx.store.get(paths.commitment(uid, paths.DAILY, date_key))
    report = ctx.store.get(paths.report(uid, date_key))
    return {
        "date": date_key,
        "commitment": {"id": date_key, **commitment} if commitment is not None else None,
        "report": {"id": date_key, **report} if report is not None else None,
    }


def list_commitments(ctx, uid: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """Daily commitments, newest first, flagged with whether a report was filed.

    ``status`` is ``"achieved"`` or ``"missed"``; ``completed``/``failed``
    count as their respective synonyms.
    """
    entries = ctx.store.list(paths.commitment_entries(uid, paths.DAILY), order_by="id", descending=True)
    result = []
    for entry in entries:
        entry_status = entry.get("status") or "pending"
        if status == "achieved" and entry_status not in ACHIEVED_STATUSES:
            continue
        if status == "missed" and entry_status not in MISSED_STATUSES:
            continue
        result.append(
            {
                "id": entry["id"],
                "date": entry["id"],
                "target": entry.get("target") or 0,
                "achieved": entry.get("achieved") or 0,
                "status": entry_status,
                "hasReport": ctx.store.exists(paths.report(uid, entry["id"])),
            }
        )
    return result
