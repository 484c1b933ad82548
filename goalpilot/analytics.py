"""Progress analytics derived from a goal and its dated task records.

Everything here is recomputed from the records passed in; nothing is cached
or persisted. Task records only need ``date`` (``YYYY-MM-DD``), ``status``,
``time`` (minutes) and ``created_at`` attributes, so ORM rows and the
snapshot dataclasses below are interchangeable.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from .config import DEFAULT_PHASE_LABEL, PHASE_WEEK_UNIT
from .json_extract import coerce_positive_int
from .time_utils import date_key, ensure_utc, utc_now, utc_today

COMPLETED = "completed"
WEEK_NUMBER = "week_number"
FRACTIONAL_WEEK = "fractional_week"

_SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class TaskSnapshot:
    date: str
    status: str
    time: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class GoalSnapshot:
    created_at: datetime
    total_days: Optional[int] = None
    phases: List[Dict[str, Any]] = field(default_factory=list)


def round_half_up(value: float) -> int:
    """Round like a calculator does: 2.5 -> 3, not Python's 2."""

    return int(math.floor(value + 0.5))


def _is_completed(task: Any) -> bool:
    return getattr(task, "status", None) == COMPLETED


def _group_by_date(tasks: Iterable[Any]) -> Dict[str, List[Any]]:
    grouped: Dict[str, List[Any]] = {}
    for task in tasks:
        if task.date:
            grouped.setdefault(task.date, []).append(task)
    return grouped


def current_day_number(created_at: datetime, now: Optional[datetime] = None) -> int:
    """Mission day for a goal, counting the creation day as day 1."""

    reference = ensure_utc(now or utc_now())
    elapsed = abs((reference - ensure_utc(created_at)).total_seconds())
    return math.ceil(elapsed / _SECONDS_PER_DAY) or 1


def _phase_label(phase: Dict[str, Any]) -> Optional[str]:
    return phase.get("phase") or phase.get("name")


def current_phase(
    phases: Optional[Sequence[Any]],
    day_number: int,
    default: str = DEFAULT_PHASE_LABEL,
    *,
    unit: str = PHASE_WEEK_UNIT,
) -> str:
    """Name of the first phase whose week range contains ``day_number``.

    With ``unit="week_number"`` the day is converted to its 1-based week
    (days 1-7 are week 1) and compared with inclusive integer week ranges.
    ``unit="fractional_week"`` compares the raw ``day_number / 7`` instead.
    """

    if unit == FRACTIONAL_WEEK:
        position: float = day_number / 7
    else:
        position = max(1, math.ceil(day_number / 7))

    for phase in phases or []:
        if not isinstance(phase, dict):
            continue
        weeks = phase.get("weeks")
        if not isinstance(weeks, (list, tuple)) or len(weeks) < 2:
            continue
        try:
            start, end = float(weeks[0]), float(weeks[1])
        except (TypeError, ValueError):
            continue
        if start <= position <= end:
            return _phase_label(phase) or default

    return default


def fully_completed_dates(tasks: Iterable[Any]) -> Set[str]:
    """Dates that have at least one task and no unfinished ones."""

    return {
        day
        for day, day_tasks in _group_by_date(tasks).items()
        if all(_is_completed(task) for task in day_tasks)
    }


def current_streak(tasks: Iterable[Any], today: Optional[date] = None) -> int:
    """Consecutive fully completed days ending today, or yesterday if today is open."""

    candidates = fully_completed_dates(tasks)
    cursor = today or utc_today()
    if date_key(cursor) not in candidates:
        cursor -= timedelta(days=1)

    streak = 0
    while date_key(cursor) in candidates:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def weekly_completion_rate(
    tasks: Iterable[Any], now: Optional[datetime] = None
) -> int:
    """Percent of tasks created in the trailing seven days that are completed."""

    cutoff = ensure_utc(now or utc_now()) - timedelta(days=7)
    recent = [
        task
        for task in tasks
        if getattr(task, "created_at", None) is not None
        and ensure_utc(task.created_at) >= cutoff
    ]
    if not recent:
        return 0
    completed = sum(1 for task in recent if _is_completed(task))
    return round_half_up(completed / len(recent) * 100)


def missed_day_count(tasks: Iterable[Any], today: Optional[date] = None) -> int:
    """Past dates on which at least one task was left unfinished."""

    today_str = date_key(today or utc_today())
    return sum(
        1
        for day, day_tasks in _group_by_date(tasks).items()
        if day != today_str and not all(_is_completed(task) for task in day_tasks)
    )


def days_completed(tasks: Iterable[Any]) -> int:
    """Distinct dates with at least one completed task."""

    return len({task.date for task in tasks if _is_completed(task) and task.date})


def average_focus_time(tasks: Iterable[Any]) -> str:
    """Completed minutes per active day, formatted as ``"<n>m"``."""

    completed = [task for task in tasks if _is_completed(task)]
    active_days = len({task.date for task in completed if task.date})
    if not active_days:
        return "0m"
    # Unreadable minutes count as zero.
    total_minutes = sum(coerce_positive_int(task.time) or 0 for task in completed)
    return f"{round_half_up(total_minutes / active_days)}m"


def day_status(tasks: Iterable[Any], day: date) -> str:
    """``completed``, ``in_progress`` or ``not_started`` for one calendar day."""

    day_tasks = [task for task in tasks if task.date == date_key(day)]
    if not day_tasks:
        return "not_started"
    if all(_is_completed(task) for task in day_tasks):
        return "completed"
    return "in_progress"


def yesterday_status(tasks: Iterable[Any], today: Optional[date] = None) -> str:
    yesterday = (today or utc_today()) - timedelta(days=1)
    return "completed" if day_status(tasks, yesterday) == "completed" else "skipped"


def seven_day_history(
    tasks: Iterable[Any], today: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Per-day completed/total counts for the last seven days, oldest first."""

    anchor = today or utc_today()
    history = {
        date_key(anchor - timedelta(days=offset)): {"completed": 0, "total": 0}
        for offset in range(6, -1, -1)
    }
    for task in tasks:
        bucket = history.get(task.date)
        if bucket is None:
            continue
        bucket["total"] += 1
        if _is_completed(task):
            bucket["completed"] += 1

    return [{"date": day, **counts} for day, counts in history.items()]


def missed_yesterday(
    history: Sequence[Dict[str, Any]], today: Optional[date] = None
) -> bool:
    yesterday = date_key((today or utc_today()) - timedelta(days=1))
    for entry in history:
        if entry["date"] == yesterday:
            return entry["total"] > 0 and entry["completed"] < entry["total"]
    return False


_RANKS = (
    (100, "ACE PILOT", "Legend", 200, "star"),
    (50, "COMMANDER", "Ace Pilot", 100, "shield-checkmark"),
    (20, "OFFICER", "Commander", 50, "medal"),
    (5, "ROOKIE", "Officer", 20, "airplane"),
    (0, "CADET", "Rookie", 5, "leaf"),
)


def rank_info(total_completed: int) -> Dict[str, Any]:
    """Pilot rank for a lifetime completed-task count."""

    for threshold, name, next_rank, target, icon in _RANKS:
        if total_completed >= threshold:
            break
    return {"name": name, "next": next_rank, "target": target, "icon": icon}


def progress_percentage(completed: int, total: Optional[int]) -> int:
    if not total:
        return 0
    return round_half_up(completed / total * 100)


@dataclass
class ProgressReport:
    day_number: int
    total_days: Optional[int]
    current_phase: str
    current_streak: int
    weekly_rate: int
    days_missed: int
    days_completed: int
    avg_time: str
    today_status: str
    yesterday_status: str
    progress_percentage: int

    def to_context(self) -> Dict[str, Any]:
        """Fields in the shape the generation prompts expect."""

        context = asdict(self)
        context["current_day"] = context.pop("day_number")
        return context


def build_progress_report(
    goal: Any,
    tasks: Sequence[Any],
    *,
    now: Optional[datetime] = None,
    default_phase: str = DEFAULT_PHASE_LABEL,
) -> ProgressReport:
    """Compute every metric for one goal from a single read of its tasks."""

    reference = ensure_utc(now or utc_now())
    today = reference.date()
    day_number = current_day_number(goal.created_at, reference)
    completed_days = days_completed(tasks)
    today_state = day_status(tasks, today)

    return ProgressReport(
        day_number=day_number,
        total_days=goal.total_days,
        current_phase=current_phase(goal.phases, day_number, default_phase),
        current_streak=current_streak(tasks, today),
        weekly_rate=weekly_completion_rate(tasks, reference),
        days_missed=missed_day_count(tasks, today),
        days_completed=completed_days,
        avg_time=average_focus_time(tasks),
        today_status="completed" if today_state == "completed" else "pending",
        yesterday_status=yesterday_status(tasks, today),
        progress_percentage=progress_percentage(completed_days, goal.total_days),
    )
