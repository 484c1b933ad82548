"""FastAPI application for the GoalPilot backend."""

from __future__ import annotations

import math
from contextlib import asynccontextmanager
from datetime import datetime, time, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from . import analytics, goal_manager
from .ai_gateway import (
    generate_daily_tasks,
    generate_dashboard_summary,
    generate_goal_plan,
    generate_smart_notification,
)
from .config import MODEL_NAME
from .credentials import credential_pool
from .database import SessionLocal, init_database
from .models import Goal, User
from .schemas import (
    GoalCreate,
    GoalGenerateRequest,
    NotificationRequest,
    TaskProgressUpdate,
    UserCreate,
)
from .time_utils import parse_date, utc_now


async def get_db() -> AsyncGenerator[Session, None]:
    # Scoped to the request task, so concurrent requests never share a session.
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        SessionLocal.remove()


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the ``X-User-Id`` header set by the auth layer."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = goal_manager.get_user(db, x_user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - startup/shutdown glue
    init_database()
    print(f"[AI-CORE] Initialized with {len(credential_pool)} API Keys.")
    print("🚀 GoalPilot is online - FastAPI backend ready")
    yield
    print("GoalPilot backend shutting down...")


app = FastAPI(title="GoalPilot", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> Dict[str, Any]:
    return {
        "status": "active",
        "message": "GoalPilot is ready",
        "version": "1.0",
        "model": MODEL_NAME,
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    try:
        goal_count = db.query(Goal).count()
        return {
            "status": "healthy",
            "version": "1.0",
            "database": "connected",
            "goals_count": goal_count,
            "ai_model": MODEL_NAME,
            "api_keys_configured": len(credential_pool),
            "active_key": credential_pool.current_index + 1
            if len(credential_pool)
            else None,
        }
    except Exception as exc:  # pragma: no cover
        return {"status": "unhealthy", "error": str(exc), "version": "1.0"}


@app.post("/users", status_code=201)
async def register_user(
    payload: UserCreate, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    try:
        user = goal_manager.create_user(db, payload)
    except goal_manager.DuplicateUserError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    db.commit()
    return goal_manager.serialize_user(user)


# Goals -----------------------------------------------------------------------


def _requested_total_days(target_date: str) -> int:
    target = parse_date(target_date)
    if target is None:
        raise HTTPException(status_code=422, detail="target_date must be YYYY-MM-DD")
    target_start = datetime.combine(target, time.min, tzinfo=timezone.utc)
    seconds = abs((target_start - utc_now()).total_seconds())
    return max(1, math.ceil(seconds / 86_400))


@app.post("/goals/generate", status_code=201)
async def generate_goal(
    request: GoalGenerateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    total_days = _requested_total_days(request.target_date)
    print(f"[API] Generating plan for '{request.title}' over {total_days} days")

    plan = await generate_goal_plan(
        {
            "title": request.title,
            "target_date": request.target_date,
            "daily_time": request.daily_time,
            "goal_type": request.goal_type,
            "skill_level": request.skill_level,
            "total_days": total_days,
        }
    )

    goal, tasks = goal_manager.create_goal_from_plan(
        db, user.id, request, plan, total_days
    )
    db.commit()
    print(f"✅ Goal '{goal.title}' saved with {len(tasks)} day-1 tasks")

    return {
        "goal": goal_manager.serialize_goal(goal),
        "tasks": [goal_manager.serialize_task(task) for task in tasks],
    }


@app.post("/goals", status_code=201)
async def create_goal(
    payload: GoalCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    goal = goal_manager.create_goal(db, user.id, payload.title, payload.description)
    db.commit()
    return goal_manager.serialize_goal(goal)


@app.get("/goals")
async def get_goals(
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    goals = goal_manager.list_goals(db, user.id)
    return [goal_manager.serialize_goal(goal) for goal in goals]


@app.get("/goals/{goal_id}")
async def get_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    goal = goal_manager.get_goal(db, user.id, goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    tasks = goal_manager.tasks_for_goal(db, goal.id)
    return {
        "goal": goal_manager.serialize_goal(goal),
        "tasks": [goal_manager.serialize_task(task) for task in tasks],
    }


@app.delete("/goals/{goal_id}")
async def delete_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if not goal_manager.delete_goal(db, user.id, goal_id):
        raise HTTPException(status_code=404, detail="Goal not found")
    db.commit()
    return {"message": "Goal deleted successfully", "id": goal_id}


@app.patch("/goals/{goal_id}/activate")
async def activate_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    goal = goal_manager.activate_goal(db, user.id, goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    db.commit()
    return goal_manager.serialize_goal(goal)


# Tasks -----------------------------------------------------------------------


@app.get("/tasks/today")
async def get_today_tasks(
    mood: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    now = utc_now()
    today = now.date()
    goals = goal_manager.active_goals(db, user.id)
    tasks = goal_manager.tasks_on(db, [goal.id for goal in goals], today)

    coach_message = ""
    for goal in goals:
        if any(task.goal_id == goal.id for task in tasks):
            continue

        history = goal_manager.task_snapshots(goal_manager.tasks_for_goal(db, goal.id))
        day_number = analytics.current_day_number(goal.created_at or now, now)
        phase = analytics.current_phase(goal.phases, day_number, "In Progress")
        print(f"🧭 AI coaching needed for goal '{goal.title}', day {day_number}")

        coach_plan = await generate_daily_tasks(
            {
                "goal_title": goal.title,
                "goal_type": goal.goal_type,
                "current_day": day_number,
                "total_days": goal.total_days,
                "daily_time": goal.daily_time,
                "current_phase": phase,
                "yesterday_status": analytics.yesterday_status(history, today),
                "mood": mood,
            }
        )

        saved = goal_manager.save_daily_tasks(
            db, goal, coach_plan["tasks"], day_number=day_number, day=today
        )
        tasks.extend(saved)
        if saved and not coach_message:
            coach_message = coach_plan.get("coachMessage") or ""

    db.commit()
    return {
        "tasks": [goal_manager.serialize_task(task) for task in tasks],
        "coachMessage": coach_message,
    }


@app.patch("/tasks/{task_id}/progress")
async def update_task_progress(
    task_id: int,
    update: TaskProgressUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    try:
        task = goal_manager.update_task_status(db, user.id, task_id, update.status)
    except goal_manager.InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    db.commit()
    return goal_manager.serialize_task(task)


# Analytics -------------------------------------------------------------------


@app.get("/analytics/stats")
async def get_stats(
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> Dict[str, Any]:
    tasks = goal_manager.task_snapshots(goal_manager.tasks_for_user(db, user.id))
    today = utc_now().date()

    history = analytics.seven_day_history(tasks, today)
    total_completed = sum(1 for task in tasks if task.status == analytics.COMPLETED)
    return {
        "history": history,
        "streak": analytics.current_streak(tasks, today),
        "totalCompleted": total_completed,
        "missedYesterday": analytics.missed_yesterday(history, today),
        "rank": analytics.rank_info(total_completed),
    }


@app.get("/analytics/summary")
async def get_summary(
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> Dict[str, Any]:
    goal = goal_manager.ensure_active_goal(db, user.id)
    if goal is None:
        raise HTTPException(status_code=404, detail="No active goal found.")
    db.commit()

    snapshot = goal_manager.goal_snapshot(goal)
    tasks = goal_manager.task_snapshots(goal_manager.tasks_for_goal(db, goal.id))
    report = analytics.build_progress_report(snapshot, tasks)

    context = report.to_context()
    context.update({"goal_title": goal.title, "goal_type": goal.goal_type})
    summary = await generate_dashboard_summary(context)

    other_goals = [
        goal_manager.serialize_goal(other, brief=True)
        for other in goal_manager.list_goals(db, user.id)
        if other.id != goal.id
    ]
    return {
        **summary,
        "goalId": goal.id,
        "metrics": context,
        "otherGoals": other_goals,
    }


@app.post("/notifications/generate")
async def generate_notification(
    request: NotificationRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    goal = goal_manager.ensure_active_goal(db, user.id)
    if goal is None:
        return {
            "title": "Start a Mission! 🚀",
            "message": "Set your first goal to begin the journey.",
            "cta": "Create Goal",
        }
    db.commit()

    tasks = goal_manager.task_snapshots(goal_manager.tasks_for_goal(db, goal.id))
    report = analytics.build_progress_report(goal_manager.goal_snapshot(goal), tasks)
    today = utc_now().date()

    context = report.to_context()
    context.update(
        {
            "user_name": request.user_name or user.display_name or "Pilot",
            "goal_title": goal.title,
            "goal_type": goal.goal_type,
            "today_status": analytics.day_status(tasks, today),
            "time_of_day": request.time_of_day,
            "mood": request.mood or "Neutral",
        }
    )
    return await generate_smart_notification(context)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("goalpilot.app:app", host="0.0.0.0", port=8000, reload=True)
