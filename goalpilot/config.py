"""Application configuration and constants for the GoalPilot backend."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final, List

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

# Directories
BASE_DIR: Final[Path] = Path(__file__).resolve().parent.parent
DATA_DIR: Final[Path] = BASE_DIR / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database configuration
DEFAULT_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'goalpilot.db').as_posix()}"
DATABASE_URL: Final[str] = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL

# Gemini / AI configuration
MODEL_NAME: Final[str] = os.getenv("MODEL_NAME", "gemini-2.5-flash")
GENERATION_TEMPERATURE: Final[float] = float(
    os.getenv("GENERATION_TEMPERATURE", "0.7")
)

_MAX_NUMBERED_KEYS = 9


def _load_api_keys() -> List[str]:
    """Collect Gemini keys in rotation order.

    ``GEMINI_API_KEY`` comes first, then ``GEMINI_API_KEY_2`` .. ``_9``, then any
    comma-separated extras in ``GEMINI_API_KEYS``. Blanks and duplicates are dropped.
    """

    candidates = [os.getenv("GEMINI_API_KEY", "")]
    candidates.extend(
        os.getenv(f"GEMINI_API_KEY_{n}", "") for n in range(2, _MAX_NUMBERED_KEYS + 1)
    )
    candidates.extend(os.getenv("GEMINI_API_KEYS", "").split(","))

    keys: List[str] = []
    for candidate in candidates:
        key = candidate.strip()
        if key and key not in keys:
            keys.append(key)
    return keys


GEMINI_API_KEYS: Final[List[str]] = _load_api_keys()

# Analytics defaults
DEFAULT_PHASE_LABEL: Final[str] = os.getenv("DEFAULT_PHASE_LABEL", "Operational")
PHASE_WEEK_UNIT: Final[str] = os.getenv("PHASE_WEEK_UNIT", "week_number")
DEFAULT_TASK_MINUTES: Final[int] = int(os.getenv("DEFAULT_TASK_MINUTES", 30))
