from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional


class PlanGenerationError(RuntimeError):
    pass


class PlanParseError(PlanGenerationError):
    """Model output was not a list of {day, focus, exercises[], ...} objects."""

    def __init__(self, message: str, raw_response: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response


class RateLimitError(PlanGenerationError):
    pass


# Served whenever a personalised plan cannot be produced
DEFAULT_PLAN: List[Dict[str, Any]] = [
    {
        "day": "Day 1",
        "focus": "Upper Body",
        "exercises": ["Push-ups", "Pull-ups", "Shoulder Press", "Tricep Dips"],
        "duration": "45 min",
        "difficulty": "Intermediate",
    },
    {
        "day": "Day 2",
        "focus": "Lower Body",
        "exercises": ["Squats", "Lunges", "Deadlifts", "Calf Raises"],
        "duration": "50 min",
        "difficulty": "Intermediate",
    },
    {
        "day": "Day 3",
        "focus": "Core & Cardio",
        "exercises": ["Planks", "Russian Twists", "Mountain Climbers", "Burpees"],
        "duration": "40 min",
        "difficulty": "Beginner",
    },
]


def default_plan() -> List[Dict[str, Any]]:
    return copy.deepcopy(DEFAULT_PLAN)


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_plan(data: Any, *, raw_response: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Check that data is a list where every element has a non-empty day and
    focus and a list of exercises. Returns the plan unchanged.
    """
    if not isinstance(data, list):
        raise PlanParseError("Workout plan must be a JSON array", raw_response)
    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise PlanParseError(f"Plan entry {idx} is not an object", raw_response)
        if not _non_empty(item.get("day")) or not _non_empty(item.get("focus")):
            raise PlanParseError(f"Plan entry {idx} is missing 'day' or 'focus'", raw_response)
        if not isinstance(item.get("exercises"), list):
            raise PlanParseError(f"Plan entry {idx} has no 'exercises' list", raw_response)
    return data


def parse_plan_text(text: str) -> List[Dict[str, Any]]:
    """Parse model output into a plan, extracting the outermost [...] when wrapped in prose."""
    if text is None:
        raise PlanParseError("Empty response from model", None)
    stripped = text.strip()
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError:
        start = stripped.find("[")
        end = stripped.rfind("]")
        if start == -1 or end <= start:
            raise PlanParseError("Could not find a JSON array in the model output", text)
        try:
            data = json.loads(stripped[start:end + 1])
        except json.JSONDecodeError as exc:
            raise PlanParseError(f"Model output is not valid JSON: {exc.msg}", text) from exc
    return validate_plan(data, raw_response=text)
