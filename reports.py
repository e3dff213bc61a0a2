"""Daily reports and the rollup updates they trigger."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import paths
from commitments import commitment_status
from errors import DuplicateSubmissionError
from periods import MONDAY, end_of_month, end_of_week, period_keys, start_of_month, start_of_week
from prospects import add_prospect
from rollups import merge_rollup
from schemas import ReportCreate

logger = logging.getLogger(__name__)


def extra_tasks(calls_made: int, target: Optional[int]) -> int:
    """Calls beyond the target; without a commitment every call is extra."""
    if target is None:
        return calls_made
    return max(0, calls_made - target)


def completion(calls_made: int, target: int) -> float:
    if not target:
        return 100.0
    return calls_made / target * 100


def submit_report(ctx, uid: str, payload: ReportCreate) -> Dict[str, Any]:
    """File today's report.

    Side effects run as independent writes in this order: commitment
    achieved/status, weekly rollup, monthly rollup, the report itself, new
    prospects, meeting outcomes. A failure part way leaves the earlier writes
    in place.
    """
    store = ctx.store
    now = ctx.now()
    keys = period_keys(now)
    report_path = paths.report(uid, keys.day)

    if store.exists(report_path):
        raise DuplicateSubmissionError("You have already submitted a report for today")

    calls_made = payload.calls_made
    commitment_path = paths.commitment(uid, paths.DAILY, keys.day)
    commitment = store.get(commitment_path)

    if commitment is not None:
        target = commitment.get("target") or 0
        store.update(
            commitment_path,
            {"achieved": calls_made, "status": commitment_status(calls_made, target), "updatedAt": now},
        )
        tasks, extra = 1, extra_tasks(calls_made, target)
    else:
        logger.info("No commitment found for %s on %s", uid, keys.day)
        target = 0
        tasks, extra = 0, extra_tasks(calls_made, None)

    merge_rollup(
        store,
        paths.stats(uid, paths.WEEKLY_STATS, keys.week),
        increment=(tasks, extra),
        seed=(tasks, extra),
        start=start_of_week(now, MONDAY, ctx.tz),
        end=end_of_week(now, MONDAY, ctx.tz),
        now=now,
    )
    merge_rollup(
        store,
        paths.stats(uid, paths.MONTHLY_STATS, keys.month),
        increment=(tasks, extra),
        seed=(tasks, extra),
        start=start_of_month(now, ctx.tz),
        end=end_of_month(now, ctx.tz),
        now=now,
    )

    report = {
        "callsMade": calls_made,
        "callsTarget": target,
        "completion": completion(calls_made, target),
        "prospectsCount": len(payload.prospects),
        "totalProspects": len(payload.prospects),
        "convertedProspects": sum(1 for m in payload.meeting_outcomes if m.outcome == "converted"),
        "meetingsBooked": len(payload.meeting_outcomes),
        "totalExpectedRevenue": sum(m.expected_revenue for m in payload.meeting_outcomes),
        "closures": [c.to_document() for c in payload.closures],
        "closuresCount": len(payload.closures),
        "revenue": sum(c.amount for c in payload.closures),
        "feedback": payload.feedback or "",
        "date": now,
        "dateStr": keys.day,
        "weekStr": keys.week,
        "monthStr": keys.month,
        "year": keys.year,
        "month": keys.month_number,
        "day": keys.day_number,
        "weekNumber": keys.week_number,
        "createdAt": now,
        "updatedAt": now,
    }
    store.set(report_path, report)

    for entry in payload.prospects:
        add_prospect(ctx, uid, entry, report_date=keys.day)

    meetings_path = paths.report_meetings(uid, keys.day)
    for meeting in payload.meeting_outcomes:
        store.add(
            meetings_path,
            {**meeting.to_document(), "userId": uid, "date": now, "createdAt": now, "updatedAt": now},
        )

    logger.info(
        "Report stored for %s on %s: %d calls against target %d", uid, keys.day, calls_made, target
    )
    return {"id": keys.day, "hasCommitment": commitment is not None, **report}


def get_report(ctx, uid: str, date_key: str) -> Dict[str, Any]:
    """Report for one day with its meeting outcomes; ``report`` is ``None`` if not filed."""
    report = ctx.store.get(paths.report(uid, date_key))
    if report is None:
        return {"date": date_key, "report": None, "meetings": []}
    meetings = ctx.store.list(paths.report_meetings(uid, date_key), order_by="createdAt")
    return {"date": date_key, "report": {"id": date_key, **report}, "meetings": meetings}


def _matches(outcome: str, calls_made: int, target: int) -> bool:
    if outcome == "exceeded":
        return calls_made > target
    if outcome == "met":
        return calls_made == target
    if outcome == "missed":
        return calls_made < target
    return True


def list_reports(ctx, uid: str, outcome: str = "all") -> List[Dict[str, Any]]:
    entries = ctx.store.list(paths.report_entries(uid), order_by="id", descending=True)
    result = []
    for entry in entries:
        calls_made = entry.get("callsMade") or 0
        target = entry.get("callsTarget") or 0
        if not _matches(outcome, calls_made, target):
            continue
        result.append(
            {
                "id": entry["id"],
                "date": entry["id"],
                "callsMade": calls_made,
                "callsTarget": target,
                "meetingsBooked": entry.get("meetingsBooked") or 0,
                "totalExpectedRevenue": entry.get("totalExpectedRevenue") or 0,
                "completion": entry.get("completion") or 0,
                "hasCommitment": ctx.store.exists(paths.commitment(uid, paths.DAILY, entry["id"])),
            }
        )
    return result
