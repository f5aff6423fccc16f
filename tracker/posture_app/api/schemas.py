"""Pydantic schemas for backend request/response payloads.

The wire format is snake_case JSON. Older backends answered in camelCase, so
every decoded entity normalises its keys before validation.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

SESSION_TYPES: dict[str, str] = {
    "evaluare": "Evaluation",
    "consolidare": "Consolidation",
    "corectie": "Correction",
}

DEFAULT_DEVIATION_THRESHOLD = 15.0

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_RE.sub(r"_\1", key).lower()


class WireModel(BaseModel):
    """Base for entities decoded from backend JSON."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {to_snake(k) if isinstance(k, str) else k: v for k, v in data.items()}
        return data


class Student(WireModel):
    id: int
    name: str
    age: int
    condition: str = ""
    notes: str = ""


class Measurement(WireModel):
    id: int
    student_id: int
    height: float
    weight: float
    head_circumference: Optional[float] = None
    chest_circumference: Optional[float] = None
    abdominal_circumference: Optional[float] = None
    physical_disability: str = ""
    created_at: Optional[datetime] = None


class Session(WireModel):
    id: int
    student_id: int
    session_date: date
    session_type: str = "evaluare"
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def _trim_timestamp(cls, data: Any) -> Any:
        # Some backends serialise DATE columns as full ISO timestamps
        if isinstance(data, dict):
            raw = data.get("session_date", data.get("sessionDate"))
            if isinstance(raw, str) and "T" in raw:
                key = "session_date" if "session_date" in data else "sessionDate"
                data = {**data, key: raw.split("T", 1)[0]}
        return data


class Photo(WireModel):
    id: int
    student_id: int
    uri: str = ""
    created_at: Optional[datetime] = None


class Angles(WireModel):
    shoulder_tilt: float
    hip_tilt: float
    spine_tilt: float

    def as_dict(self) -> dict[str, float]:
        return {
            "shoulder_tilt": self.shoulder_tilt,
            "hip_tilt": self.hip_tilt,
            "spine_tilt": self.spine_tilt,
        }

    def high_deviation_axes(self, threshold: float = DEFAULT_DEVIATION_THRESHOLD) -> List[str]:
        """Axes whose absolute tilt exceeds ``threshold`` degrees (soft warning)."""

        return [axis for axis, value in self.as_dict().items() if abs(value) > threshold]


class PostureAnalysis(WireModel):
    id: int
    photo_id: int
    shoulder_tilt: float
    hip_tilt: float
    spine_tilt: float
    overlay_uri: Optional[str] = Field(default=None, validation_alias=AliasChoices("overlay_uri", "overlay"))
    created_at: Optional[datetime] = None

    @property
    def angles(self) -> Angles:
        return Angles(shoulder_tilt=self.shoulder_tilt, hip_tilt=self.hip_tilt, spine_tilt=self.spine_tilt)


class AnalysisResult(WireModel):
    """Response of ``POST /posture/:photoId/analyze``."""

    angles: Angles
    overlay_uri: Optional[str] = Field(default=None, validation_alias=AliasChoices("overlay_uri", "overlay"))
    posture: Optional[PostureAnalysis] = None


class PhotoRecord(BaseModel):
    """A photo paired with its most recent analysis, as listed on the detail screen."""

    photo: Photo
    latest: Optional[PostureAnalysis] = None

    def high_deviation_axes(self, threshold: float = DEFAULT_DEVIATION_THRESHOLD) -> List[str]:
        if self.latest is None:
            return []
        return self.latest.angles.high_deviation_axes(threshold)


# Outgoing payloads


class StudentIn(BaseModel):
    name: str = Field(min_length=1)
    age: int = Field(ge=0)
    condition: str = ""
    notes: str = ""


class MeasurementUpdate(BaseModel):
    height: float
    weight: float
    head_circumference: Optional[float] = None
    chest_circumference: Optional[float] = None
    abdominal_circumference: Optional[float] = None
    physical_disability: str = ""


class MeasurementIn(MeasurementUpdate):
    student_id: int


class SessionUpdate(BaseModel):
    session_date: date
    session_type: str = "evaluare"
    notes: str = ""


class SessionIn(SessionUpdate):
    student_id: int
