"""
FastAPI entry point for the Form Friend backend.

Endpoints:
    POST /generate-workout   personalised plan from Gemini
    GET  /exercises          exercise profiles known to the form coach
    POST /coach/analyze      run the form analyzer over a sequence of poses

Run:
    uvicorn api.main:app --host 0.0.0.0 --port 5000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from analysis.analyzer import analyze_frames
from analysis.profiles import PROFILES, UnknownExerciseError
from api import config
from api.schemas import (
    AngleSpecOut,
    CoachAnalyzeRequest,
    CoachAnalyzeResponse,
    ErrorResponse,
    ExerciseOut,
    WorkoutDay,
    WorkoutRequest,
)
from planner.gemini import GeminiPlanGenerator
from planner.plans import PlanGenerationError, PlanParseError, RateLimitError
from pose.backend import keypoints_from_dicts


logger = logging.getLogger("form_friend")
logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.GEMINI_API_KEY:
        logger.error("GEMINI_API_KEY is not set; /generate-workout will fail until it is configured")
    logger.info("Form Friend API ready (model=%s)", config.GEMINI_MODEL_NAME)
    yield
    logger.info("Shutting down.")


app = FastAPI(title="Form Friend API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


GENERIC_PLAN_ERROR = "Failed to generate workout plan due to an internal server error."

_generator: Optional[GeminiPlanGenerator] = None


def get_plan_generator() -> Optional[GeminiPlanGenerator]:
    """Lazily build the Gemini client; None when no API key is configured."""
    global _generator
    if _generator is None and config.GEMINI_API_KEY:
        _generator = GeminiPlanGenerator(
            config.GEMINI_API_KEY,
            config.GEMINI_MODEL_NAME,
            temperature=config.GEMINI_TEMPERATURE,
            max_output_tokens=config.GEMINI_MAX_OUTPUT_TOKENS,
        )
    return _generator


def _error(status_code: int, message: str, raw_response: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(message=message, rawResponse=raw_response)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.get("/health")
async def health() -> dict:
    return {"status": "healthy", "message": "Form Friend backend is running."}


@app.post(
    "/generate-workout",
    responses={
        200: {"model": List[WorkoutDay]},
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def generate_workout(
    req: WorkoutRequest,
    generator: Optional[GeminiPlanGenerator] = Depends(get_plan_generator),
):
    if req.healthStats is None or req.goals is None:
        return _error(400, "Missing healthStats or goals in request body.")
    if generator is None:
        return _error(500, "GEMINI_API_KEY is not configured on the server.")

    health_stats = req.healthStats.model_dump(exclude_none=True)
    goals = req.goals.model_dump(exclude_none=True)
    try:
        plan = generator.generate(health_stats, goals)
    except RateLimitError as exc:
        return _error(429, str(exc))
    except PlanParseError as exc:
        logger.error("Failed to parse Gemini response as a plan: %s", exc)
        return _error(
            500,
            "AI response was not in the expected format. Please try again.",
            exc.raw_response,
        )
    except PlanGenerationError as exc:
        logger.error("Error generating workout plan: %s", exc)
        return _error(500, str(exc) or GENERIC_PLAN_ERROR)
    except Exception as exc:
        logger.exception("Unexpected error generating workout plan")
        return _error(500, str(exc) or GENERIC_PLAN_ERROR)
    return JSONResponse(content=plan)


@app.get("/exercises", response_model=List[ExerciseOut])
async def exercises() -> List[ExerciseOut]:
    out = []
    for profile in PROFILES.values():
        out.append(
            ExerciseOut(
                name=profile.name,
                label=profile.label,
                angles={
                    name: AngleSpecOut(
                        joints=spec.joints,
                        ideal=spec.ideal,
                        display_range=spec.display_range,
                        excellent_range=spec.excellent_range,
                        side=spec.side,
                    )
                    for name, spec in profile.angles.items()
                },
                counts_reps=profile.rep_thresholds is not None,
            )
        )
    return out


@app.post("/coach/analyze", response_model=CoachAnalyzeResponse)
def coach_analyze(req: CoachAnalyzeRequest) -> CoachAnalyzeResponse:
    frames = [keypoints_from_dicts(kp.model_dump() for kp in frame) for frame in req.frames]
    try:
        result = analyze_frames(frames, req.exercise)
    except UnknownExerciseError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown exercise: {req.exercise}") from exc
    return CoachAnalyzeResponse(
        exercise=result["exercise"],
        ticks=result["ticks"],
        snapshot=result["snapshot"],
        history=result["history"] if req.include_history else None,
    )
