"""
Workout plan generation with Google Gemini.

The model is asked for a JSON array of days; its answer is parsed and
validated before it is handed back to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .plans import PlanGenerationError, RateLimitError, parse_plan_text


logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = (
    "You are a highly experienced, knowledgeable, and motivating personal fitness trainer. "
    "Your primary goal is to create safe, effective, and personalized workout plans. "
    "You should provide clear instructions, emphasize proper form, and consider the user's goals, "
    "current fitness level, available equipment, time commitment, and any preferences or "
    "limitations (like injuries). Always respond with the workout plan strictly in JSON format "
    "as requested by the user, and nothing else. Ensure the JSON is valid and matches the "
    "specified structure."
)


def _or(value: Any, fallback: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return fallback
    return str(value)


def build_workout_prompt(health_stats: Mapping[str, Any], goals: Mapping[str, Any]) -> str:
    weight = health_stats.get("weight")
    height = health_stats.get("height")
    return f"""Generate a personalized workout plan in JSON format.
The plan should be an array of objects, where each object represents a day.
Each day object MUST have the following properties: 'day' (e.g., "Day 1"), 'focus' (e.g., "Upper Body Strength"), 'exercises' (an array of strings, e.g., ["Bench Press 3x8", "Overhead Press 3x10"]), 'duration' (e.g., "60 min"), and 'difficulty' (e.g., "Intermediate").
Ensure the 'exercises' array contains specific exercises with suggested sets and reps.
Include a warm-up and cool-down for each day within the exercise list, clearly labeled.

Here are the user's details:
- Age: {_or(health_stats.get("age"), "N/A")}
- Gender: {_or(health_stats.get("gender"), "N/A")}
- Weight: {f"{weight} kg" if weight else "N/A"}
- Height: {f"{height} cm" if height else "N/A"}
- Fitness Level: {_or(health_stats.get("fitnessLevel"), "N/A")}
- Medical Conditions: {_or(health_stats.get("medicalConditions"), "None")}

User's Goals:
- Primary Goal: {_or(goals.get("primaryGoal"), "General Fitness")}
- Target Weight: {_or(goals.get("targetWeight"), "N/A")}
- Workout Frequency: {_or(goals.get("workoutFrequency"), "N/A")}
- Timeframe (for goal): {_or(goals.get("timeframe"), "N/A")}
- Current Fitness Level: {_or(goals.get("fitnessLevel"), "N/A")}
- Available Equipment: {_or(goals.get("availableEquipment"), "N/A")}

Based on these details, create a plan for the specified workout frequency.
Example JSON structure:
[
  {{
    "day": "Day 1",
    "focus": "Full Body Strength",
    "exercises": ["Warm-up: 5 min light cardio", "Squats 3x10", "Push-ups 3xAMRAP", "Bent-over Rows 3x10", "Plank 3x30s", "Cool-down: 5 min stretching"],
    "duration": "60 min",
    "difficulty": "Beginner"
  }}
]
"""


class GeminiPlanGenerator:
    """Thin wrapper over a Gemini model that returns validated workout plans."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-1.5-flash",
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 1200,
        model: Optional[object] = None,
    ) -> None:
        """
        If model is provided, it must expose
        .generate_content(prompt, generation_config=...) -> response with .text.
        """
        self.model_name = model_name
        self.temperature = float(temperature)
        self.max_output_tokens = int(max_output_tokens)
        if model is not None:
            self._model = model
            return
        if not api_key:
            raise PlanGenerationError("GEMINI_API_KEY is not configured")
        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model_name, system_instruction=SYSTEM_INSTRUCTION)

    def generate(self, health_stats: Mapping[str, Any], goals: Mapping[str, Any]) -> List[Dict[str, Any]]:
        prompt = build_workout_prompt(health_stats, goals)
        config = {
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
            "response_mime_type": "application/json",
        }
        try:
            response = self._model.generate_content(prompt, generation_config=config)
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as exc:
            logger.warning("Gemini rate limit hit: %s", exc)
            raise RateLimitError("Gemini API Rate Limit Exceeded. Please wait and try again.") from exc
        except google_exceptions.GoogleAPIError as exc:
            logger.error("Gemini call failed: %s", exc)
            raise PlanGenerationError(f"Gemini call failed: {exc}") from exc
        except Exception as exc:
            # Blocked prompts, stopped candidates and transport errors
            logger.error("Gemini call failed: %s", exc)
            raise PlanGenerationError(f"Gemini call failed: {exc}") from exc

        try:
            text = response.text
        except Exception as exc:
            # .text raises when the candidate was blocked or empty
            raise PlanGenerationError(f"Gemini returned no text: {exc}") from exc
        logger.debug("Raw Gemini response: %s", text)
        return parse_plan_text(text)
