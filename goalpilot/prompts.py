"""Prompt templates for the GoalPilot generation calls."""

from __future__ import annotations

import json
from typing import Any, Dict

PERSONA = 'You are the "GoalPilot Mission Commander".'

PROMPT_TEMPLATES = {
    "goal_plan": """
{persona} Create a 100% COMPLETE execution plan for a user's goal.
User Goal: "{title}"
Duration: {total_days} days
Daily Time: {daily_time}
Level: {skill_level}

Rules:
1. Tone: Hinglish (supportive, mission commander).
2. Comprehensive: every day from Day 1 to Day {total_days} must be logically mapped.
3. Phases use integer week numbers, e.g. "weeks": [1, 2] covers days 1-14.

Return a JSON object shaped like:
{example}
CRITICAL: Return ONLY valid JSON.
""",
    "daily_tasks": """
{persona} Guide the user daily.
Based on the user's plan and mood, generate TODAY's actionable mission.
Tone: Hinglish. Specificity: High.

User Goal: {goal_title} (Day {current_day}/{total_days})
Current Phase: {current_phase}
Yesterday: {yesterday_status}
Mood: {mood}
Time: {daily_time}

Return a JSON object shaped like:
{example}
""",
    "dashboard_summary": """
{persona} Analyze the user's cockpit. Tone: Analytical & Hinglish.
Goal: {goal_title}
Day: {current_day}/{total_days} ({current_phase})
Days completed: {days_completed}, days missed: {days_missed}
Streak: {current_streak} days, weekly completion: {weekly_rate}%
Average focus time: {avg_time}, today: {today_status}

Return a JSON object shaped like:
{example}
""",
    "notification": """
Generate ONE short mission notification. Tone: Friendly, Hinglish, not robotic.
User: {user_name}, Goal: {goal_title}, Day: {current_day}/{total_days}, Mood: {mood}
Time of day: {time_of_day}, today: {today_status}, streak: {current_streak} days
Return JSON: {example}
""",
}

_EXAMPLES: Dict[str, Dict[str, Any]] = {
    "goal_plan": {
        "goalTitle": "<title>",
        "totalDays": 0,
        "summary": "Strategic vision in Hinglish...",
        "fullPlan": [
            {
                "day": 1,
                "theme": "Kickoff",
                "tasks": [{"title": "Initial Setup", "time": 30}],
            }
        ],
        "phases": [{"phase": "Phase Name", "weeks": [1, 2], "focus": "Focus Area"}],
        "rules": {
            "bufferDaysPerWeek": 1,
            "maxTasksPerDay": 3,
            "skipLogic": "Hinglish advice",
        },
    },
    "daily_tasks": {
        "day": 0,
        "focus": "Brief focus in Hinglish",
        "microHabit": "Tiny 2-min win",
        "tasks": [
            {
                "title": "Action Verb + Result",
                "time": 20,
                "type": "Practice",
                "difficulty": "Easy",
            }
        ],
        "coachMessage": "Short message in Hinglish",
    },
    "dashboard_summary": {
        "goalTitle": "<title>",
        "progressPercentage": 0,
        "dayStatusText": "Day N ka safar",
        "streakText": "N Day Streak",
        "aiInsight": "Insight in supportive Hinglish...",
        "primaryAction": "Next win...",
    },
    "notification": {"title": "str", "message": "str", "cta": "str"},
}


def render_prompt(operation: str, context: Dict[str, Any]) -> str:
    """Fill the template for ``operation``; missing fields render as ``"n/a"``."""

    example = dict(_EXAMPLES[operation])
    if "goalTitle" in example:
        example["goalTitle"] = context.get("goal_title") or context.get("title")
    if operation == "goal_plan":
        example["totalDays"] = context.get("total_days")
    if operation == "daily_tasks":
        example["day"] = context.get("current_day")
    if operation == "dashboard_summary":
        example["progressPercentage"] = context.get("progress_percentage", 0)
        example["dayStatusText"] = f"Day {context.get('current_day')} ka safar"
        example["streakText"] = f"{context.get('current_streak', 0)} Day Streak"

    values = _DefaultingDict(context)
    values["persona"] = PERSONA
    values["example"] = json.dumps(example, indent=2, ensure_ascii=False)
    return PROMPT_TEMPLATES[operation].format_map(values).strip()


class _DefaultingDict(dict):
    def __missing__(self, key: str) -> str:
        return "n/a"

    def __getitem__(self, key: str) -> Any:
        value = super().__getitem__(key)
        return "n/a" if value is None else value
