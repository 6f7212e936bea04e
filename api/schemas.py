from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class HealthStats(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    age: Optional[float] = Field(default=None, ge=0)
    gender: Optional[str] = None
    weight: Optional[float] = Field(default=None, ge=0)
    height: Optional[float] = Field(default=None, ge=0)
    fitnessLevel: Optional[str] = None
    medicalConditions: Optional[str] = None


class Goals(BaseModel):
    model_config = ConfigDict(extra="allow")

    primaryGoal: Optional[str] = None
    targetWeight: Optional[float] = Field(default=None, ge=0)
    workoutFrequency: Optional[str] = None
    timeframe: Optional[str] = None
    fitnessLevel: Optional[str] = None
    availableEquipment: Optional[str] = None


class WorkoutRequest(BaseModel):
    healthStats: Optional[HealthStats] = None
    goals: Optional[Goals] = None


class WorkoutDay(BaseModel):
    day: str
    focus: str
    exercises: List[str]
    duration: Optional[str] = None
    difficulty: Optional[str] = None


class ErrorResponse(BaseModel):
    message: str
    rawResponse: Optional[str] = None


class KeypointIn(BaseModel):
    name: str
    x: float
    y: float
    score: float = Field(ge=0.0, le=1.0)


class CoachAnalyzeRequest(BaseModel):
    exercise: str
    frames: List[List[KeypointIn]] = Field(
        ..., description="One pose per detection tick; an empty list means no pose was found"
    )
    include_history: bool = False


class FeedbackBarOut(BaseModel):
    position: float = Field(ge=0.0, le=1.0)
    ideal_position: float = 0.5


class AngleMetricOut(BaseModel):
    value: Optional[float] = None
    feedback: str = ""
    bar: Optional[FeedbackBarOut] = None
    tier: Optional[str] = None


class SnapshotOut(BaseModel):
    exercise: str
    angles: Dict[str, AngleMetricOut]
    reps: int = Field(0, ge=0)
    form_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    form_label: Optional[str] = None


class CoachAnalyzeResponse(BaseModel):
    exercise: str
    ticks: int
    snapshot: SnapshotOut
    history: Optional[List[SnapshotOut]] = None


class AngleSpecOut(BaseModel):
    joints: Tuple[str, str, str]
    ideal: float
    display_range: float
    excellent_range: float
    side: str


class ExerciseOut(BaseModel):
    name: str
    label: str
    angles: Dict[str, AngleSpecOut]
    counts_reps: bool
