"""Tests for the flat-to-nested data migration."""

from datetime import date, datetime, timezone

import pytest

import paths
from commitments import submit_commitment
from migration import MigrationLog, migrate_commitments, migrate_reports, migrate_users, run_data_migration
from schemas import CommitmentCreate

LEGACY_DAY = datetime(2024, 1, 10, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def legacy(ctx):
    """Flat-layout data for one user with a commitment and its report."""
    store = ctx.store
    store.set("users/u1", {"displayName": "Uma Seller", "email": "uma@example.com", "role": "manager"})
    store.set(
        "commitments/c1",
        {
            "userId": "u1",
            "date": LEGACY_DAY,
            "callsToBeMade": 20,
            "actualCalls": 0,
            "status": "pending",
            "expectedClosures": [{"customerName": "Acme"}],
            "totalExpectedRevenue": 100,
        },
    )
    store.set("commitments/orphan", {"date": LEGACY_DAY, "callsToBeMade": 5})
    store.set(
        "reports/r1",
        {"userId": "u1", "date": LEGACY_DAY, "callsMade": 25, "callsPlanned": 20, "commitmentId": "c1"},
    )
    return store


def _weekly(store, key: str = "2024-W02"):
    return store.get(paths.stats("u1", paths.WEEKLY_STATS, key))


def _monthly(store, key: str = "2024-01"):
    return store.get(paths.stats("u1", paths.MONTHLY_STATS, key))


class TestStages:
    def test_users_keep_role_and_take_display_name(self, ctx, legacy) -> None:
        """Test the user stage merge."""
        migrate_users(ctx, MigrationLog())
        user = legacy.get("users/u1")
        assert user["name"] == "Uma Seller"
        assert user["role"] == "manager"
        assert user["isActive"] is True
        assert user["uid"] == "u1"

    def test_commitments_are_nested_per_period(self, ctx, legacy) -> None:
        """Test the daily document and both aggregates."""
        log = MigrationLog()
        migrate_commitments(ctx, log)

        daily = legacy.get(paths.commitment("u1", paths.DAILY, "2024-01-10"))
        assert daily["target"] == 20
        assert daily["expectedClosures"] == 1
        assert daily["dayOfWeek"] == 3

        weekly = legacy.get(paths.commitment("u1", paths.WEEKLY, "2024-W02"))
        assert weekly["weekNumber"] == 2
        assert weekly["startDate"].date() == date(2024, 1, 7)
        assert legacy.get(paths.commitment("u1", paths.MONTHLY, "2024-01"))["monthNumber"] == 1

        assert "Skipping commitment orphan - no userId" in log.messages

    def test_string_dates_are_parsed(self, ctx) -> None:
        """Test legacy records holding ISO strings."""
        ctx.store.set("commitments/c9", {"userId": "u9", "date": "2024-01-03T10:00:00", "callsToBeMade": 4})
        migrate_commitments(ctx, MigrationLog())
        assert ctx.store.exists(paths.commitment("u9", paths.DAILY, "2024-01-03"))

    def test_report_updates_commitment_and_rollups(self, ctx, legacy) -> None:
        """Test the report stage after the commitment stage."""
        log = MigrationLog()
        migrate_commitments(ctx, log)
        migrate_reports(ctx, log)

        report = legacy.get(paths.report("u1", "2024-01-10"))
        assert report["callsMade"] == 25
        assert report["callsTarget"] == 20

        daily = legacy.get(paths.commitment("u1", paths.DAILY, "2024-01-10"))
        assert daily["achieved"] == 25
        assert daily["status"] == "achieved"

        assert (_weekly(legacy)["tasksCompleted"], _weekly(legacy)["extraTasks"]) == (1, 5)
        assert (_monthly(legacy)["tasksCompleted"], _monthly(legacy)["extraTasks"]) == (1, 5)

    def test_unmet_plan_seeds_zero_tasks(self, ctx) -> None:
        """Test the seed of a new rollup when the plan was not met."""
        ctx.store.set("reports/r2", {"userId": "u1", "date": LEGACY_DAY, "callsMade": 5, "callsPlanned": 20})
        migrate_reports(ctx, MigrationLog())
        assert (_weekly(ctx.store)["tasksCompleted"], _weekly(ctx.store)["extraTasks"]) == (0, 0)


class TestRunDataMigration:
    def test_full_run(self, ctx, legacy) -> None:
        """Test the four stages end to end, including current-period user stats."""
        legacy.set("user_stats/u2", {"completedCommitments": 3, "lastWeekCalls": 40})

        log = run_data_migration(ctx)

        assert log.errors == 0
        assert log.messages[0] == "Starting data migration..."
        assert log.messages[-1] == "Data migration completed"
        stats = legacy.get(paths.stats("u2", paths.WEEKLY_STATS, "2024-W02"))
        assert (stats["tasksCompleted"], stats["extraTasks"]) == (3, 40)
        assert legacy.exists(paths.stats("u2", paths.MONTHLY_STATS, "2024-01"))

    def test_failing_stage_does_not_stop_later_ones(self, ctx) -> None:
        """Test that an error is logged and the next stage still runs."""
        ctx.store.set("reports/bad", {"userId": "u1", "date": LEGACY_DAY, "callsMade": "lots", "callsPlanned": 20})
        ctx.store.set("user_stats/u3", {"completedCommitments": 1, "lastWeekCalls": 2})

        log = run_data_migration(ctx)

        assert log.errors == 1
        assert any(m.startswith("Error migrating reports:") for m in log.messages)
        assert "User stats migration completed" in log.messages
        assert ctx.store.exists(paths.stats("u3", paths.WEEKLY_STATS, "2024-W02"))

    def test_running_twice_doubles_aggregates(self, ctx, legacy) -> None:
        """Test that the job is not idempotent: aggregates are added again."""
        run_data_migration(ctx)
        run_data_migration(ctx)

        assert (_weekly(legacy)["tasksCompleted"], _weekly(legacy)["extraTasks"]) == (2, 10)
        assert (_monthly(legacy)["tasksCompleted"], _monthly(legacy)["extraTasks"]) == (2, 10)
        assert legacy.get(paths.commitment("u1", paths.WEEKLY, "2024-W02"))["target"] == 40
        # Daily documents are overwritten, not summed
        assert legacy.get(paths.commitment("u1", paths.DAILY, "2024-01-10"))["target"] == 20

    def test_log_entries_are_timestamped(self, ctx, legacy) -> None:
        """Test that entries carry the context clock."""
        log = run_data_migration(ctx)
        assert all(e["time"] == ctx.now() for e in log.entries)
        assert {e["level"] for e in log.entries} == {"info"}


class TestExistingNestedData:
    def test_live_snapshot_in_same_week_is_merged(self, ctx, employee) -> None:
        """Test migrating into weekly/monthly documents written by the app."""
        submit_commitment(
            ctx,
            "emp1",
            CommitmentCreate.model_validate(
                {"callsToBeMade": 20, "expectedClosures": [{"customerName": "Acme", "expectedRevenue": 300}]}
            ),
        )
        ctx.store.set(
            "commitments/c1",
            {
                "userId": "emp1",
                "date": datetime(2024, 1, 9, 10, 0, tzinfo=timezone.utc),
                "callsToBeMade": 10,
                "expectedClosures": [{"customerName": "Globex"}],
                "totalExpectedRevenue": 200,
            },
        )
        ctx.store.set(
            "commitments/c2",
            {"userId": "u2", "date": datetime(2023, 5, 9, 10, 0, tzinfo=timezone.utc), "callsToBeMade": 7},
        )

        log = run_data_migration(ctx)

        assert log.errors == 0
        weekly = ctx.store.get(paths.commitment("emp1", paths.WEEKLY, "2024-W02"))
        assert weekly["target"] == 30
        assert weekly["expectedClosures"] == 2
        assert weekly["totalExpectedRevenue"] == 500
        assert ctx.store.get(paths.commitment("emp1", paths.MONTHLY, "2024-01"))["expectedClosures"] == 2
        assert ctx.store.exists(paths.commitment("u2", paths.DAILY, "2023-05-09"))

    def test_string_dates_become_datetimes_everywhere(self, ctx) -> None:
        """Test that createdAt holds the parsed date, not the legacy string."""
        ctx.store.set("commitments/c9", {"userId": "u9", "date": "2024-01-03T10:00:00", "callsToBeMade": 4})
        ctx.store.set("reports/r9", {"userId": "u9", "date": "2024-01-03T10:00:00", "callsMade": 4})

        run_data_migration(ctx)

        expected = datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc)
        assert ctx.store.get(paths.commitment("u9", paths.DAILY, "2024-01-03"))["createdAt"] == expected
        assert ctx.store.get(paths.commitment("u9", paths.WEEKLY, "2024-W01"))["createdAt"] == expected
        assert ctx.store.get(paths.report("u9", "2024-01-03"))["createdAt"] == expected
        assert ctx.store.get(paths.stats("u9", paths.WEEKLY_STATS, "2024-W01"))["createdAt"] == expected
