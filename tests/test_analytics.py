from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from goalpilot import analytics
from goalpilot.analytics import GoalSnapshot, TaskSnapshot

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def _day(offset: int) -> str:
    return (TODAY - timedelta(days=offset)).isoformat()


def _task(offset: int, status: str = "completed", time: int = 30, created_days_ago=None):
    created = NOW - timedelta(days=offset if created_days_ago is None else created_days_ago)
    return TaskSnapshot(date=_day(offset), status=status, time=time, created_at=created)


# Day number ------------------------------------------------------------------


def test_goal_created_today_is_day_one():
    assert analytics.current_day_number(NOW, NOW) == 1


def test_day_number_rounds_partial_days_up():
    assert analytics.current_day_number(NOW - timedelta(days=2, hours=1), NOW) == 3
    assert analytics.current_day_number(NOW - timedelta(hours=5), NOW) == 1


def test_day_number_accepts_naive_utc_timestamps():
    created = (NOW - timedelta(days=3)).replace(tzinfo=None)
    assert analytics.current_day_number(created, NOW) == 3


# Phases ----------------------------------------------------------------------

PHASES = [
    {"phase": "Foundations", "weeks": [1, 1], "focus": "Basics"},
    {"phase": "Build", "weeks": [2, 3], "focus": "Projects"},
]


def test_week_number_unit_maps_first_week_to_first_phase():
    assert analytics.current_phase(PHASES, 3, "Operational", unit="week_number") == "Foundations"
    assert analytics.current_phase(PHASES, 7, "Operational", unit="week_number") == "Foundations"
    assert analytics.current_phase(PHASES, 8, "Operational", unit="week_number") == "Build"
    assert analytics.current_phase(PHASES, 21, "Operational", unit="week_number") == "Build"
    assert analytics.current_phase(PHASES, 22, "Operational", unit="week_number") == "Operational"


def test_fractional_week_unit_falls_through_for_early_days():
    # 3 / 7 ~= 0.43, which is outside [1, 1].
    assert analytics.current_phase(PHASES, 3, "Operational", unit="fractional_week") == "Operational"
    assert analytics.current_phase(PHASES, 7, "Operational", unit="fractional_week") == "Foundations"
    assert analytics.current_phase(PHASES, 14, "Operational", unit="fractional_week") == "Build"


def test_phase_matching_tolerates_malformed_entries():
    phases = [
        "not a dict",
        {"phase": "No range"},
        {"phase": "Short", "weeks": [1]},
        {"phase": "Bad", "weeks": ["x", "y"]},
        {"name": "Named", "weeks": [1, 2]},
    ]
    assert analytics.current_phase(phases, 5, "Default") == "Named"
    assert analytics.current_phase(None, 5, "Default") == "Default"
    assert analytics.current_phase([], 5, "Default") == "Default"


# Streak ----------------------------------------------------------------------


def test_three_day_unbroken_streak():
    tasks = [_task(0), _task(1), _task(2)]
    assert analytics.current_streak(tasks, TODAY) == 3


def test_streak_stops_at_gap():
    tasks = [_task(0), _task(1), _task(3), _task(4)]
    assert analytics.current_streak(tasks, TODAY) == 2


def test_partially_done_today_counts_from_yesterday():
    tasks = [
        _task(0, "completed"),
        _task(0, "pending"),
        _task(1),
        _task(2),
    ]
    assert analytics.current_streak(tasks, TODAY) == 2


def test_day_with_an_unfinished_task_breaks_streak():
    tasks = [_task(1), _task(2), _task(2, "skipped"), _task(3)]
    assert analytics.current_streak(tasks, TODAY) == 1


def test_no_tasks_means_no_streak():
    assert analytics.current_streak([], TODAY) == 0


def test_streak_ending_two_days_ago_is_zero():
    assert analytics.current_streak([_task(2), _task(3)], TODAY) == 0


# Weekly rate / missed days / focus time -------------------------------------------


def test_weekly_rate_with_no_recent_tasks_is_zero():
    assert analytics.weekly_completion_rate([], NOW) == 0
    old = [_task(10), _task(12)]
    assert analytics.weekly_completion_rate(old, NOW) == 0


def test_weekly_rate_uses_creation_time_not_task_date():
    tasks = [
        _task(1, "completed"),
        _task(2, "pending"),
        _task(3, "completed"),
        # Dated long ago but created recently: counted.
        _task(20, "completed", created_days_ago=1),
        # Dated recently but created long ago: ignored.
        _task(1, "pending", created_days_ago=30),
    ]
    assert analytics.weekly_completion_rate(tasks, NOW) == 75


def test_weekly_rate_rounds_half_up():
    tasks = [_task(1, "completed")] + [_task(1, "pending") for _ in range(7)]
    assert analytics.weekly_completion_rate(tasks, NOW) == 13


def test_weekly_rate_ignores_tasks_without_created_at():
    tasks = [TaskSnapshot(date=_day(1), status="completed", time=10)]
    assert analytics.weekly_completion_rate(tasks, NOW) == 0


def test_missed_days_exclude_today():
    tasks = [
        _task(0, "pending"),
        _task(1, "completed"),
        _task(1, "pending"),
        _task(2, "skipped"),
        _task(3, "completed"),
    ]
    assert analytics.missed_day_count(tasks, TODAY) == 2


def test_average_focus_time():
    tasks = [_task(0, time=20), _task(0, time=25), _task(1, time=30), _task(2, "pending", time=90)]
    assert analytics.average_focus_time(tasks) == "38m"


def test_average_focus_time_without_completions():
    assert analytics.average_focus_time([]) == "0m"
    assert analytics.average_focus_time([_task(0, "pending")]) == "0m"


def test_average_focus_time_treats_missing_minutes_as_zero():
    tasks = [TaskSnapshot(date=_day(0), status="completed", time=None)]
    assert analytics.average_focus_time(tasks) == "0m"


def test_average_focus_time_reads_loose_minutes():
    tasks = [
        TaskSnapshot(date=_day(0), status="completed", time="20 min"),
        TaskSnapshot(date=_day(0), status="completed", time="later"),
        TaskSnapshot(date=_day(1), status="completed", time=40),
    ]
    assert analytics.average_focus_time(tasks) == "30m"


# Day status / history ----------------------------------------------------------------


def test_day_status_variants():
    assert analytics.day_status([], TODAY) == "not_started"
    assert analytics.day_status([_task(0), _task(0, "pending")], TODAY) == "in_progress"
    assert analytics.day_status([_task(0)], TODAY) == "completed"


def test_yesterday_status():
    assert analytics.yesterday_status([_task(1)], TODAY) == "completed"
    assert analytics.yesterday_status([_task(1, "pending")], TODAY) == "skipped"
    assert analytics.yesterday_status([], TODAY) == "skipped"


def test_seven_day_history_is_oldest_first_and_counts():
    tasks = [_task(0), _task(0, "pending"), _task(6), _task(7)]
    history = analytics.seven_day_history(tasks, TODAY)

    assert [entry["date"] for entry in history] == [_day(n) for n in range(6, -1, -1)]
    assert history[-1] == {"date": _day(0), "completed": 1, "total": 2}
    assert history[0] == {"date": _day(6), "completed": 1, "total": 1}


def test_missed_yesterday_flag():
    history = analytics.seven_day_history([_task(1), _task(1, "pending")], TODAY)
    assert analytics.missed_yesterday(history, TODAY) is True

    history = analytics.seven_day_history([_task(1)], TODAY)
    assert analytics.missed_yesterday(history, TODAY) is False

    history = analytics.seven_day_history([], TODAY)
    assert analytics.missed_yesterday(history, TODAY) is False


@pytest.mark.parametrize(
    "total, name, target",
    [(0, "CADET", 5), (4, "CADET", 5), (5, "ROOKIE", 20), (20, "OFFICER", 50), (99, "COMMANDER", 100), (150, "ACE PILOT", 200)],
)
def test_rank_ladder(total, name, target):
    info = analytics.rank_info(total)
    assert info["name"] == name
    assert info["target"] == target


def test_progress_percentage():
    assert analytics.progress_percentage(0, 0) == 0
    assert analytics.progress_percentage(3, None) == 0
    assert analytics.progress_percentage(1, 8) == 13


# Full report ---------------------------------------------------------------


def test_report_for_goal_started_three_days_ago():
    goal = GoalSnapshot(
        created_at=NOW - timedelta(days=3),
        total_days=30,
        phases=[{"phase": "Kickoff", "weeks": [1, 1]}, {"phase": "Grind", "weeks": [2, 3]}],
    )
    tasks = [_task(0, "completed"), _task(0, "pending"), _task(1, time=40), _task(2, time=20)]

    report = analytics.build_progress_report(goal, tasks, now=NOW, default_phase="Operational")

    assert report.day_number == 3
    assert report.current_phase == "Kickoff"
    assert report.current_streak == 2
    assert report.today_status == "pending"
    assert report.yesterday_status == "completed"
    assert report.days_missed == 0
    assert report.days_completed == 3
    assert report.avg_time == "30m"
    assert report.weekly_rate == 75
    assert report.progress_percentage == 10

    context = report.to_context()
    assert context["current_day"] == 3
    assert "day_number" not in context


def test_report_for_goal_without_tasks():
    goal = GoalSnapshot(created_at=NOW, total_days=None)

    report = analytics.build_progress_report(goal, [], now=NOW)

    assert report.day_number == 1
    assert report.current_streak == 0
    assert report.weekly_rate == 0
    assert report.avg_time == "0m"
    assert report.today_status == "pending"
    assert report.progress_percentage == 0


def test_report_accepts_objects_with_matching_attributes():
    class Row:
        def __init__(self, date_, status):
            self.date = date_
            self.status = status
            self.time = 15
            self.created_at = NOW

    report = analytics.build_progress_report(
        GoalSnapshot(created_at=NOW - timedelta(days=1), total_days=10),
        [Row(_day(0), "completed")],
        now=NOW,
    )
    assert report.current_streak == 1
