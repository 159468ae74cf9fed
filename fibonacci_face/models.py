"""Domain types shared by the analyzer, the renderer and the API.

Wire names follow the AI service's JSON contract (camelCase); Python code uses
the snake_case attribute names.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AppState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RESULT = "result"
    ERROR = "error"


class ErrorKind(str, Enum):
    MULTIPLE_FACES = "MULTIPLE_FACES"
    LOW_QUALITY = "LOW_QUALITY"
    NO_FACE = "NO_FACE"


class ImageUnit(BaseModel):
    """A photo held in memory, whether it came from an upload or the camera."""
    model_config = ConfigDict(frozen=True)

    payload: bytes
    mime_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.payload)


class FeatureScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    feature: str
    score: int = Field(ge=0, le=100)


class DetailedScore(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ratio_name: str = Field(alias="ratioName")
    value: str
    deviation: int


class OverlayLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    x1: float = Field(ge=0.0, le=1.0)
    y1: float = Field(ge=0.0, le=1.0)
    x2: float = Field(ge=0.0, le=1.0)
    y2: float = Field(ge=0.0, le=1.0)
    label: Optional[str] = None


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    overall_score: int = Field(alias="overallScore", ge=0, le=100)
    feedback: str
    feature_scores: List[FeatureScore] = Field(alias="featureScores")
    detailed_scores: List[DetailedScore] = Field(alias="detailedScores")
    overlay_lines: List[OverlayLine] = Field(alias="overlayLines")
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = Field(default=None, alias="errorMessage")

    @field_validator("error", "error_message", mode="before")
    @classmethod
    def _blank_as_missing(cls, value):
        # The model sometimes emits "" for optional fields instead of omitting them.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="before")
    @classmethod
    def _clear_rejected_fields(cls, data):
        """A rejected photo carries no scores, whatever the service sent along."""
        if not isinstance(data, dict):
            return data
        error = data.get("error")
        if not (isinstance(error, str) and error.strip()):
            return data
        cleared = {k: v for k, v in data.items() if k not in (
            "overall_score", "feature_scores", "detailed_scores", "overlay_lines")}
        cleared.update({"overallScore": 0, "feedback": "", "featureScores": [], "detailedScores": [], "overlayLines": []})
        return cleared

    @property
    def is_rejection(self) -> bool:
        return self.error is not None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AppSnapshot(BaseModel):
    """Immutable view of the controller state; every transition produces a new one."""
    model_config = ConfigDict(frozen=True)

    state: AppState = AppState.IDLE
    image: Optional[ImageUnit] = None
    preview_handle: Optional[str] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    inline_error: Optional[str] = None
    details_visible: bool = False
    camera_open: bool = False
    cycle: int = 0
