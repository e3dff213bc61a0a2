"""Document store paths (schema-in-code).

The store has no DDL. Collections come into existence on first write, so
these helpers are the single source of truth for where each entity lives:

- ``users/{uid}``
- ``users/{uid}/commitments/{daily|weekly|monthly}/entries/{periodKey}``
- ``users/{uid}/reports/daily/entries/{dateKey}``
- ``users/{uid}/reports/daily/entries/{dateKey}/meetings/{id}``
- ``users/{uid}/prospects/{id}``
- ``users/{uid}/stats/{weeklyAccomplishments|monthlyAccomplishments}/entries/{periodKey}``
"""

USERS = "users"
ANNOUNCEMENTS = "announcements"
ACTIVITIES = "activities"

# Root collections read by the admin overview
PROSPECTS = "prospects"
MEETINGS = "meetings"
CLOSURES = "closures"

# Flat collections of the pre-nesting layout, read by the migration job
LEGACY_COMMITMENTS = "commitments"
LEGACY_REPORTS = "reports"
LEGACY_USER_STATS = "user_stats"

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
COMMITMENT_PERIODS = (DAILY, WEEKLY, MONTHLY)

WEEKLY_STATS = "weeklyAccomplishments"
MONTHLY_STATS = "monthlyAccomplishments"


def user(uid: str) -> str:
    return f"{USERS}/{uid}"


def commitment_entries(uid: str, period: str = DAILY) -> str:
    if period not in COMMITMENT_PERIODS:
        raise ValueError(f"Unknown commitment period: {period}")
    return f"{user(uid)}/commitments/{period}/entries"


def commitment(uid: str, period: str, key: str) -> str:
    return f"{commitment_entries(uid, period)}/{key}"


def report_entries(uid: str) -> str:
    return f"{user(uid)}/reports/daily/entries"


def report(uid: str, date_key: str) -> str:
    return f"{report_entries(uid)}/{date_key}"


def report_meetings(uid: str, date_key: str) -> str:
    return f"{report(uid, date_key)}/meetings"


def prospects(uid: str) -> str:
    return f"{user(uid)}/prospects"


def prospect(uid: str, prospect_id: str) -> str:
    return f"{prospects(uid)}/{prospect_id}"


def stats_entries(uid: str, kind: str) -> str:
    if kind not in (WEEKLY_STATS, MONTHLY_STATS):
        raise ValueError(f"Unknown stats kind: {kind}")
    return f"{user(uid)}/stats/{kind}/entries"


def stats(uid: str, kind: str, key: str) -> str:
    return f"{stats_entries(uid, kind)}/{key}"
