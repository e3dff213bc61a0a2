"""One-shot migration from the flat collections to the nested per-user layout.

Old layout: ``users``, ``commitments``, ``reports`` and ``user_stats`` as root
collections. New layout: see :mod:`paths`.

The job runs four stages in order. Each stage is best-effort: an exception
ends that stage, is written to the log, and the next stage still runs.
Nothing is transactional and nothing is idempotent; running the job twice
adds every weekly/monthly aggregate a second time.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import paths
from periods import (
    SUNDAY,
    end_of_day,
    end_of_month,
    end_of_week,
    period_keys,
    start_of_month,
    start_of_week,
    sunday_based_weekday,
)
from rollups import merge_rollup

logger = logging.getLogger(__name__)


class MigrationLog:
    """Collects migration output for the caller and mirrors it to the module logger."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.entries: List[Dict[str, Any]] = []

    def _append(self, level: str, message: str) -> None:
        self.entries.append({"time": self.clock(), "level": level, "message": message})

    def info(self, message: str) -> None:
        logger.info(message)
        self._append("info", message)

    def error(self, message: str) -> None:
        logger.error(message)
        self._append("error", message)

    @property
    def errors(self) -> int:
        return sum(1 for e in self.entries if e["level"] == "error")

    @property
    def messages(self) -> List[str]:
        return [e["message"] for e in self.entries]


def _legacy_datetime(value: Any, ctx) -> Optional[datetime]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ctx.tz)


# ---------------------------
# Stage 1: users
# ---------------------------
def migrate_users(ctx, log: MigrationLog) -> None:
    log.info("Migrating users...")
    store = ctx.store
    for user in store.list(paths.USERS):
        uid = user["id"]
        now = ctx.now()
        store.set(
            paths.user(uid),
            {
                "uid": uid,
                "email": user.get("email"),
                "name": user.get("displayName") or user.get("name"),
                "role": user.get("role") or "employee",
                "joinedDate": user.get("createdAt") or now,
                "isActive": True,
                "profilePictureUrl": user.get("photoURL"),
                "lastLogin": user.get("lastLogin") or now,
            },
            merge=True,
        )
        log.info(f"Migrated user {uid}")
    log.info("Users migration completed")


# ---------------------------
# Stage 2: commitments
# ---------------------------
def _count(value: Any) -> int:
    # Snapshots written by submit_commitment hold the closures themselves
    if isinstance(value, list):
        return len(value)
    return value or 0


def _merge_commitment_aggregate(ctx, path: str, record: Dict[str, Any], created: Dict[str, Any]) -> None:
    store = ctx.store
    existing = store.get(path)
    if existing is not None:
        store.set(
            path,
            {
                "target": (existing.get("target") or 0) + record["target"],
                "achieved": (existing.get("achieved") or 0) + record["achieved"],
                "expectedClosures": _count(existing.get("expectedClosures")) + record["expectedClosures"],
                "totalExpectedRevenue": (existing.get("totalExpectedRevenue") or 0)
                + record["totalExpectedRevenue"],
                "updatedAt": ctx.now(),
            },
            merge=True,
        )
    else:
        store.set(path, {**record, **created})


def migrate_commitments(ctx, log: MigrationLog) -> None:
    log.info("Migrating commitments...")
    store = ctx.store
    for old in store.list(paths.LEGACY_COMMITMENTS):
        uid = old.get("userId")
        if not uid:
            log.info(f"Skipping commitment {old['id']} - no userId")
            continue

        now = ctx.now()
        moment = _legacy_datetime(old.get("date"), ctx) or now
        keys = period_keys(moment)
        record = {
            "target": old.get("callsToBeMade") or 0,
            "achieved": old.get("actualCalls") or 0,
            "expectedClosures": len(old.get("expectedClosures") or []),
            "totalExpectedRevenue": old.get("totalExpectedRevenue") or 0,
        }
        status = old.get("status") or "pending"
        created_at = moment

        store.set(
            paths.commitment(uid, paths.DAILY, keys.day),
            {
                **record,
                "startDate": moment,
                "endDate": end_of_day(moment, ctx.tz),
                "status": status,
                "dayOfWeek": sunday_based_weekday(moment),
                "dayOfMonth": moment.day,
                "createdAt": created_at,
                "updatedAt": now,
            },
        )
        _merge_commitment_aggregate(
            ctx,
            paths.commitment(uid, paths.WEEKLY, keys.week),
            record,
            {
                "startDate": start_of_week(moment, SUNDAY, ctx.tz),
                "endDate": end_of_week(moment, SUNDAY, ctx.tz),
                "status": status,
                "weekNumber": keys.week_number,
                "createdAt": created_at,
                "updatedAt": now,
            },
        )
        _merge_commitment_aggregate(
            ctx,
            paths.commitment(uid, paths.MONTHLY, keys.month),
            record,
            {
                "startDate": start_of_month(moment, ctx.tz),
                "endDate": end_of_month(moment, ctx.tz),
                "status": status,
                "monthNumber": keys.month_number,
                "createdAt": created_at,
                "updatedAt": now,
            },
        )
        log.info(f"Migrated commitment {old['id']} for user {uid}")
    log.info("Commitments migration completed")


# ---------------------------
# Stage 3: reports
# ---------------------------
def migrate_reports(ctx, log: MigrationLog) -> None:
    log.info("Migrating reports...")
    store = ctx.store
    for old in store.list(paths.LEGACY_REPORTS):
        uid = old.get("userId")
        if not uid:
            log.info(f"Skipping report {old['id']} - no userId")
            continue

        now = ctx.now()
        moment = _legacy_datetime(old.get("date"), ctx) or now
        keys = period_keys(moment)
        calls_made = old.get("callsMade") or 0
        calls_planned = old.get("callsPlanned") or 0
        prospects = old.get("prospects") or []
        created_at = moment

        store.set(
            paths.report(uid, keys.day),
            {
                "callsMade": calls_made,
                "callsTarget": calls_planned,
                "completion": old.get("callCompletion") or 0,
                "prospects": prospects,
                "prospectsCount": old.get("prospectsCount") or len(prospects),
                "meetingsBooked": old.get("meetingsBooked") or 0,
                "totalExpectedRevenue": old.get("totalExpectedRevenue") or 0,
                "feedback": old.get("feedback") or "",
                "date": moment,
                "dateStr": keys.day,
                "weekStr": keys.week,
                "monthStr": keys.month,
                "year": keys.year,
                "month": keys.month_number,
                "day": keys.day_number,
                "weekNumber": keys.week_number,
                "createdAt": created_at,
                "updatedAt": now,
            },
        )

        if old.get("commitmentId"):
            commitment_path = paths.commitment(uid, paths.DAILY, keys.day)
            commitment = store.get(commitment_path)
            if commitment is not None:
                store.set(
                    commitment_path,
                    {
                        "achieved": calls_made,
                        "status": "achieved" if calls_made >= (commitment.get("target") or 0) else "missed",
                        "updatedAt": now,
                    },
                    merge=True,
                )

        extra = max(0, calls_made - calls_planned)
        seeded_tasks = 1 if calls_planned and calls_made >= calls_planned else 0
        merge_rollup(
            store,
            paths.stats(uid, paths.WEEKLY_STATS, keys.week),
            increment=(1, extra),
            seed=(seeded_tasks, extra),
            start=start_of_week(moment, SUNDAY, ctx.tz),
            end=end_of_week(moment, SUNDAY, ctx.tz),
            now=now,
            created_at=created_at,
        )
        merge_rollup(
            store,
            paths.stats(uid, paths.MONTHLY_STATS, keys.month),
            increment=(1, extra),
            seed=(seeded_tasks, extra),
            start=start_of_month(moment, ctx.tz),
            end=end_of_month(moment, ctx.tz),
            now=now,
            created_at=created_at,
        )
        log.info(f"Migrated report {old['id']} for user {uid}")
    log.info("Reports migration completed")


# ---------------------------
# Stage 4: user stats
# ---------------------------
def migrate_user_stats(ctx, log: MigrationLog) -> None:
    log.info("Migrating user stats...")
    store = ctx.store
    for stats in store.list(paths.LEGACY_USER_STATS):
        uid = stats["id"]
        now = ctx.now()
        keys = period_keys(now)
        seeded = {
            "tasksCompleted": stats.get("completedCommitments") or 0,
            "extraTasks": stats.get("lastWeekCalls") or 0,
            "createdAt": now,
            "updatedAt": now,
        }
        store.set(
            paths.stats(uid, paths.WEEKLY_STATS, keys.week),
            {**seeded, "startDate": start_of_week(now, SUNDAY, ctx.tz), "endDate": end_of_week(now, SUNDAY, ctx.tz)},
            merge=True,
        )
        store.set(
            paths.stats(uid, paths.MONTHLY_STATS, keys.month),
            {**seeded, "startDate": start_of_month(now, ctx.tz), "endDate": end_of_month(now, ctx.tz)},
            merge=True,
        )
        log.info(f"Migrated user stats for user {uid}")
    log.info("User stats migration completed")


STAGES = (
    ("users", migrate_users),
    ("commitments", migrate_commitments),
    ("reports", migrate_reports),
    ("user stats", migrate_user_stats),
)


def run_data_migration(ctx, log: Optional[MigrationLog] = None) -> MigrationLog:
    """Run every stage in order and return the collected log."""
    log = log or MigrationLog(ctx.now)
    log.info("Starting data migration...")
    for name, stage in STAGES:
        try:
            stage(ctx, log)
        except Exception as e:
            log.error(f"Error migrating {name}: {e}")
    log.info("Data migration completed")
    return log
