"""AI interaction helpers for the GoalPilot backend.

Every outbound Gemini call goes through :func:`call_with_rotation`, which walks
the credential pool on rate-limit errors. The four generation operations wrap
that in :func:`call_or_fallback`, so route handlers always get a well-formed
object back even when the model or every key is unavailable.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .config import DEFAULT_TASK_MINUTES, MODEL_NAME
from .credentials import CredentialPool, ModelHandle, credential_pool
from .json_extract import coerce_positive_int, extract_json
from .prompts import render_prompt

T = TypeVar("T")


class GatewayConfigurationError(RuntimeError):
    """Raised when a call is attempted without any configured API key."""


def is_rate_limit_error(error: Exception) -> bool:
    """Check if an error is a 429 / quota error that another key may avoid."""

    for attr in ("code", "status_code", "status"):
        if getattr(error, attr, None) == 429:
            return True

    error_str = str(error).lower()
    return (
        "429" in error_str or "quota" in error_str or "resource_exhausted" in error_str
    )


async def call_with_rotation(
    operation: Callable[[ModelHandle], T],
    pool: CredentialPool,
    *,
    model: str = MODEL_NAME,
    context: str = "generation",
) -> T:
    """Run ``operation`` against the active key, rotating on rate limits.

    At most ``len(pool)`` attempts are made. Errors that are not rate limits
    propagate immediately; after the final attempt the last error propagates.
    """

    attempts = len(pool)
    if attempts == 0:
        raise GatewayConfigurationError(
            "Gemini client not configured; missing GEMINI_API_KEY"
        )

    for attempt in range(attempts):
        observed_index = pool.current_index
        handle = pool.handle(model, observed_index)
        print(f"🤖 [AI] {context} call using {handle.key_label} ({model})")

        try:
            return await asyncio.to_thread(operation, handle)
        except Exception as exc:
            if not is_rate_limit_error(exc) or attempt == attempts - 1:
                raise

            new_index = pool.rotate(observed_index)
            print(
                f"⚠️  [AI-ROTATION] Rate limit hit on {handle.key_label}. "
                f"Switching to Key #{new_index + 1}..."
            )

    # The final attempt always returns or raises.
    raise GatewayConfigurationError("credential rotation ended without a result")


# Returned when a generation call cannot produce a usable object.
# String values are templated against the operation context.
FALLBACKS: Dict[str, Dict[str, Any]] = {
    "goal_plan": {
        "goalTitle": "{title}",
        "totalDays": "{total_days}",
        "summary": "Abhi roadmap generate nahi ho paya, but aapka target set hai! 🚀",
        "fullPlan": [
            {
                "day": 1,
                "theme": "Self-Start",
                "tasks": [
                    {"title": "Research basics of {title}", "time": DEFAULT_TASK_MINUTES}
                ],
            }
        ],
        "phases": [{"phase": "Kickoff", "weeks": [1, 1], "focus": "Fundamentals"}],
        "rules": {
            "bufferDaysPerWeek": 1,
            "maxTasksPerDay": 3,
            "skipLogic": "Stay consistent.",
        },
    },
    "daily_tasks": {
        "day": "{current_day}",
        "focus": "Keep moving forward",
        "microHabit": "Open your notes for 2 minutes",
        "tasks": [
            {
                "title": "Continue work on {goal_title}",
                "time": DEFAULT_TASK_MINUTES,
                "type": "Practice",
                "difficulty": "Medium",
            }
        ],
        "coachMessage": "One small step today, one giant leap tomorrow! 🚀",
    },
    "dashboard_summary": {
        "goalTitle": "{goal_title}",
        "progressPercentage": "{progress_percentage}",
        "dayStatusText": "Day {current_day} ka safar",
        "streakText": "{current_streak} Day Streak",
        "aiInsight": "You're doing great! Keep it up. 🚀",
        "primaryAction": "Complete today's priority task.",
    },
    "notification": {
        "title": "Keep Going! 🚀",
        "message": "Time to work on {goal_title}.",
        "cta": "Open App",
    },
}


def _fill(template: Any, context: Dict[str, Any]) -> Any:
    if isinstance(template, dict):
        return {key: _fill(value, context) for key, value in template.items()}
    if isinstance(template, list):
        return [_fill(item, context) for item in template]
    if not isinstance(template, str) or "{" not in template:
        return copy.deepcopy(template)

    # A template that is a single placeholder keeps the context value's type.
    if template.startswith("{") and template.endswith("}") and template.count("{") == 1:
        return context.get(template[1:-1])

    try:
        return template.format_map(_BlankDict(context))
    except (ValueError, IndexError):
        return template


class _BlankDict(dict):
    def __missing__(self, key: str) -> str:
        return ""

    def __getitem__(self, key: str) -> Any:
        value = super().__getitem__(key)
        return "" if value is None else value


def build_fallback(operation_name: str, context: Dict[str, Any]) -> Dict[str, Any]:
    """Return the default object for ``operation_name`` filled from ``context``."""

    return _fill(FALLBACKS[operation_name], context)


async def call_or_fallback(
    operation_name: str,
    prompt: str,
    context: Dict[str, Any],
    *,
    pool: Optional[CredentialPool] = None,
    model: str = MODEL_NAME,
) -> Dict[str, Any]:
    """Generate an object for ``operation_name`` or fall back to its default."""

    active_pool = pool if pool is not None else credential_pool

    try:
        text = await call_with_rotation(
            lambda handle: handle.generate_text(prompt),
            active_pool,
            model=model,
            context=operation_name,
        )
    except Exception as exc:
        print(f"❌ [AI] {operation_name} generation failed, using fallback: {exc}")
        return build_fallback(operation_name, context)

    extraction = extract_json(text)
    if not extraction.ok or extraction.value is None:
        print(
            f"❌ [AI] {operation_name} returned unparseable output, using fallback: "
            f"{extraction.error}"
        )
        return build_fallback(operation_name, context)

    return extraction.value


def _normalise_tasks(raw_tasks: Any) -> List[Dict[str, Any]]:
    tasks: List[Dict[str, Any]] = []
    if not isinstance(raw_tasks, list):
        return tasks
    for item in raw_tasks:
        if isinstance(item, dict) and item.get("title"):
            task = dict(item)
        elif isinstance(item, str) and item.strip():
            task = {"title": item.strip()}
        else:
            continue
        task["time"] = coerce_positive_int(task.get("time")) or DEFAULT_TASK_MINUTES
        tasks.append(task)
    return tasks


async def generate_goal_plan(
    details: Dict[str, Any], *, pool: Optional[CredentialPool] = None
) -> Dict[str, Any]:
    """Generate the full day-by-day plan for a new goal."""

    try:
        requested_days = int(details.get("total_days") or 0)
    except (TypeError, ValueError):
        requested_days = 0

    context = dict(details)
    context["total_days"] = max(1, requested_days)

    prompt = render_prompt("goal_plan", context)
    plan = await call_or_fallback("goal_plan", prompt, context, pool=pool)

    if not plan.get("goalTitle"):
        plan["goalTitle"] = context.get("title")
    plan["totalDays"] = coerce_positive_int(plan.get("totalDays")) or context["total_days"]
    plan["fullPlan"] = [
        {
            **day,
            "day": coerce_positive_int(day.get("day")),
            "tasks": _normalise_tasks(day.get("tasks")),
        }
        for day in plan.get("fullPlan") or []
        if isinstance(day, dict)
    ]
    if not isinstance(plan.get("phases"), list):
        plan["phases"] = []
    if not isinstance(plan.get("rules"), dict):
        plan["rules"] = {}
    return plan


async def generate_daily_tasks(
    context: Dict[str, Any], *, pool: Optional[CredentialPool] = None
) -> Dict[str, Any]:
    """Generate today's task set for a goal that has none yet."""

    context = dict(context)
    context["mood"] = context.get("mood") or "Neutral"

    prompt = render_prompt("daily_tasks", context)
    result = await call_or_fallback("daily_tasks", prompt, context, pool=pool)
    result["tasks"] = _normalise_tasks(result.get("tasks"))
    result.setdefault("day", context.get("current_day"))
    return result


async def generate_dashboard_summary(
    context: Dict[str, Any], *, pool: Optional[CredentialPool] = None
) -> Dict[str, Any]:
    prompt = render_prompt("dashboard_summary", context)
    return await call_or_fallback("dashboard_summary", prompt, context, pool=pool)


async def generate_smart_notification(
    context: Dict[str, Any], *, pool: Optional[CredentialPool] = None
) -> Dict[str, Any]:
    prompt = render_prompt("notification", context)
    return await call_or_fallback("notification", prompt, context, pool=pool)
