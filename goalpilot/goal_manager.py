"""Goal, task and user persistence helpers for GoalPilot."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from .analytics import GoalSnapshot, TaskSnapshot
from .config import DEFAULT_TASK_MINUTES
from .json_extract import coerce_positive_int
from .models import Goal, Task, User
from .schemas import GoalGenerateRequest, TaskStatus, UserCreate
from .time_utils import date_key, ensure_utc, utc_now, utc_today


class InvalidTransitionError(ValueError):
    """Raised when a task would leave a terminal status."""


class DuplicateUserError(ValueError):
    """Raised when an email or phone number is already registered."""


def _iso(value: Any) -> Optional[str]:
    return ensure_utc(value).isoformat() if value else None


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "phone_number": user.phone_number,
        "display_name": user.display_name,
        "avatar": user.avatar,
        "created_at": _iso(user.created_at),
    }


def serialize_goal(goal: Goal, *, brief: bool = False) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": goal.id,
        "title": goal.title,
        "goal_type": goal.goal_type,
        "total_days": goal.total_days,
        "completed_tasks": goal.completed_tasks or 0,
        "phases": goal.phases or [],
    }
    if brief:
        return payload

    payload.update(
        {
            "description": goal.description,
            "target_date": goal.target_date,
            "daily_time": goal.daily_time,
            "skill_level": goal.skill_level,
            "summary": goal.summary,
            "rules": goal.rules or {},
            "full_plan": goal.full_plan or [],
            "total_tasks": goal.total_tasks or 0,
            "is_active": bool(goal.is_active),
            "created_at": _iso(goal.created_at),
        }
    )
    return payload


def serialize_task(task: Task) -> Dict[str, Any]:
    return {
        "id": task.id,
        "goal_id": task.goal_id,
        "title": task.title,
        "status": task.status,
        "time": task.time,
        "type": task.type,
        "difficulty": task.difficulty,
        "day_number": task.day_number,
        "date": task.date,
        "created_at": _iso(task.created_at),
    }


def goal_snapshot(goal: Goal) -> GoalSnapshot:
    return GoalSnapshot(
        created_at=goal.created_at or utc_now(),
        total_days=goal.total_days,
        phases=list(goal.phases or []),
    )


def task_snapshots(tasks: Iterable[Task]) -> List[TaskSnapshot]:
    """Freeze task rows so one request computes over one consistent read."""

    return [
        TaskSnapshot(
            date=task.date,
            status=task.status,
            time=task.time,
            created_at=task.created_at,
        )
        for task in tasks
    ]


# Users -----------------------------------------------------------------------


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.query(User).filter(User.id == user_id).one_or_none()


def create_user(session: Session, payload: UserCreate) -> User:
    email = payload.email.strip().lower() if payload.email else None
    phone = payload.phone_number.strip() if payload.phone_number else None

    clauses = []
    if email:
        clauses.append(User.email == email)
    if phone:
        clauses.append(User.phone_number == phone)
    if session.query(User).filter(or_(*clauses)).first() is not None:
        raise DuplicateUserError("user already registered")

    user = User(
        email=email,
        phone_number=phone,
        display_name=payload.display_name,
        google_id=payload.google_id,
        last_login=utc_now(),
        created_at=utc_now(),
    )
    session.add(user)
    session.flush()
    return user


# Goals -----------------------------------------------------------------------


def list_goals(session: Session, user_id: int) -> List[Goal]:
    return (
        session.query(Goal)
        .filter(Goal.user_id == user_id)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .all()
    )


def get_goal(session: Session, user_id: int, goal_id: int) -> Optional[Goal]:
    return (
        session.query(Goal)
        .filter(Goal.id == goal_id, Goal.user_id == user_id)
        .one_or_none()
    )


def active_goals(session: Session, user_id: int) -> List[Goal]:
    return (
        session.query(Goal)
        .filter(Goal.user_id == user_id, Goal.is_active.is_(True))
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .all()
    )


def activate_goal(session: Session, user_id: int, goal_id: int) -> Optional[Goal]:
    """Make ``goal_id`` the user's only active goal in a single UPDATE.

    Returns ``None`` without touching anything when the goal does not belong
    to the user.
    """

    goal = get_goal(session, user_id, goal_id)
    if goal is None:
        return None

    session.query(Goal).filter(Goal.user_id == user_id).update(
        {Goal.is_active: case((Goal.id == goal_id, True), else_=False)},
        synchronize_session=False,
    )
    session.flush()
    session.refresh(goal)
    return goal


def ensure_active_goal(session: Session, user_id: int) -> Optional[Goal]:
    """Return the active goal, activating the most recent one if none is."""

    goals = active_goals(session, user_id)
    if goals:
        return goals[0]

    latest = (
        session.query(Goal)
        .filter(Goal.user_id == user_id)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .first()
    )
    if latest is None:
        return None
    return activate_goal(session, user_id, latest.id)


def create_goal(
    session: Session, user_id: int, title: str, description: Optional[str] = None
) -> Goal:
    goal = Goal(
        user_id=user_id,
        title=title,
        description=description,
        phases=[],
        rules={},
        full_plan=[],
        is_active=False,
        created_at=utc_now(),
    )
    session.add(goal)
    session.flush()
    return goal


def _plan_task_count(full_plan: Sequence[Dict[str, Any]]) -> int:
    return sum(len(day.get("tasks") or []) for day in full_plan)


def _build_task(
    goal: Goal, raw: Dict[str, Any], *, day_number: int, day: str, defaults: Dict
) -> Task:
    return Task(
        goal_id=goal.id,
        title=str(raw.get("title")),
        status=TaskStatus.PENDING.value,
        time=coerce_positive_int(raw.get("time")) or DEFAULT_TASK_MINUTES,
        type=raw.get("type") or defaults["type"],
        difficulty=raw.get("difficulty") or defaults["difficulty"],
        day_number=day_number,
        date=day,
        created_at=utc_now(),
    )


def create_goal_from_plan(
    session: Session,
    user_id: int,
    request: GoalGenerateRequest,
    plan: Dict[str, Any],
    total_days: int,
) -> tuple[Goal, List[Task]]:
    """Persist a generated plan, its day-1 tasks, and make it the active goal."""

    full_plan = plan.get("fullPlan") or []
    goal = Goal(
        user_id=user_id,
        title=plan.get("goalTitle") or request.title,
        description=request.description
        or f"AI Generated {request.goal_type or 'Custom'} Goal",
        target_date=request.target_date,
        daily_time=plan.get("dailyTime") or request.daily_time,
        goal_type=plan.get("goalType") or request.goal_type,
        skill_level=plan.get("skillLevel") or request.skill_level,
        total_days=plan.get("totalDays") or total_days,
        summary=plan.get("summary"),
        phases=plan.get("phases") or [],
        rules=plan.get("rules") or {},
        full_plan=full_plan,
        total_tasks=_plan_task_count(full_plan),
        completed_tasks=0,
        is_active=False,
        created_at=utc_now(),
    )
    session.add(goal)
    session.flush()

    day_one = next(
        (day for day in full_plan if coerce_positive_int(day.get("day")) == 1), None
    )
    tasks = [
        _build_task(
            goal,
            raw,
            day_number=1,
            day=date_key(utc_today()),
            defaults={"type": "Practice", "difficulty": "Easy"},
        )
        for raw in (day_one or {}).get("tasks") or []
    ]
    session.add_all(tasks)

    activate_goal(session, user_id, goal.id)
    return goal, tasks


def delete_goal(session: Session, user_id: int, goal_id: int) -> bool:
    goal = get_goal(session, user_id, goal_id)
    if goal is None:
        return False
    session.query(Task).filter(Task.goal_id == goal_id).delete(
        synchronize_session=False
    )
    session.delete(goal)
    session.flush()
    return True


# Tasks -----------------------------------------------------------------------


def tasks_for_goal(session: Session, goal_id: int) -> List[Task]:
    return (
        session.query(Task)
        .filter(Task.goal_id == goal_id)
        .order_by(Task.date.asc(), Task.id.asc())
        .all()
    )


def tasks_for_user(session: Session, user_id: int) -> List[Task]:
    return (
        session.query(Task)
        .join(Goal, Task.goal_id == Goal.id)
        .filter(Goal.user_id == user_id)
        .order_by(Task.date.desc(), Task.id.asc())
        .all()
    )


def tasks_on(session: Session, goal_ids: Sequence[int], day: date) -> List[Task]:
    if not goal_ids:
        return []
    return (
        session.query(Task)
        .filter(Task.goal_id.in_(goal_ids), Task.date == date_key(day))
        .order_by(Task.id.asc())
        .all()
    )


def save_daily_tasks(
    session: Session,
    goal: Goal,
    generated: Sequence[Dict[str, Any]],
    *,
    day_number: int,
    day: date,
) -> List[Task]:
    tasks = [
        _build_task(
            goal,
            raw,
            day_number=day_number,
            day=date_key(day),
            defaults={"type": "Action", "difficulty": "Medium"},
        )
        for raw in generated
    ]
    session.add_all(tasks)
    session.flush()
    return tasks


def update_task_status(
    session: Session, user_id: int, task_id: int, status: TaskStatus
) -> Optional[Task]:
    """Move a task to ``status`` and refresh its goal's completed counter.

    ``pending`` may move to either terminal status; a terminal status only
    accepts itself again.
    """

    task = (
        session.query(Task)
        .join(Goal, Task.goal_id == Goal.id)
        .filter(Task.id == task_id, Goal.user_id == user_id)
        .one_or_none()
    )
    if task is None:
        return None

    current = TaskStatus(task.status)
    if current.is_terminal and status is not current:
        raise InvalidTransitionError(
            f"task {task_id} is already {current.value}; cannot mark {status.value}"
        )

    task.status = status.value
    session.flush()

    completed = (
        session.query(Task)
        .filter(Task.goal_id == task.goal_id, Task.status == TaskStatus.COMPLETED.value)
        .count()
    )
    session.query(Goal).filter(Goal.id == task.goal_id).update(
        {Goal.completed_tasks: completed}, synchronize_session=False
    )
    session.flush()
    return task
