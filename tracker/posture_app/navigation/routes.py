"""Route names and their parameter schemas.

Every navigable screen has exactly one parameter model. ``schema_version``
is bumped whenever a model changes shape so stale callers fail loudly at the
navigation boundary instead of deep inside a screen.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Literal, Type

from pydantic import BaseModel, ConfigDict, Field

from posture_app.api.schemas import AnalysisResult, Measurement, Session, Student

PARAMS_SCHEMA_VERSION = 1


class RouteName(str, Enum):
    STUDENT_LIST = "student_list"
    ADD_STUDENT = "add_student"
    EDIT_STUDENT = "edit_student"
    STUDENT_DETAIL = "student_detail"
    ADD_MEASUREMENT = "add_measurement"
    EDIT_MEASUREMENT = "edit_measurement"
    ADD_SESSION = "add_session"
    EDIT_SESSION = "edit_session"
    CAMERA = "camera"
    PHOTO_REVIEW = "photo_review"
    GALLERY_IMPORT = "gallery_import"
    ABOUT = "about"


class RouteParams(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: Literal[1] = PARAMS_SCHEMA_VERSION


class NoParams(RouteParams):
    pass


class StudentRef(RouteParams):
    student_id: int = Field(gt=0)
    name: str = ""


class StudentParams(RouteParams):
    student: Student


class MeasurementParams(RouteParams):
    measurement: Measurement


class SessionParams(RouteParams):
    session: Session


class PhotoReviewParams(RouteParams):
    student_id: int = Field(gt=0)
    name: str = ""
    photo_id: int
    result: AnalysisResult


ROUTE_PARAMS: Dict[RouteName, Type[RouteParams]] = {
    RouteName.STUDENT_LIST: NoParams,
    RouteName.ADD_STUDENT: NoParams,
    RouteName.EDIT_STUDENT: StudentParams,
    RouteName.STUDENT_DETAIL: StudentRef,
    RouteName.ADD_MEASUREMENT: StudentRef,
    RouteName.EDIT_MEASUREMENT: MeasurementParams,
    RouteName.ADD_SESSION: StudentRef,
    RouteName.EDIT_SESSION: SessionParams,
    RouteName.CAMERA: StudentRef,
    RouteName.PHOTO_REVIEW: PhotoReviewParams,
    RouteName.GALLERY_IMPORT: StudentRef,
    RouteName.ABOUT: NoParams,
}

TITLES: Dict[RouteName, str] = {
    RouteName.STUDENT_LIST: "Students",
    RouteName.ADD_STUDENT: "Add student",
    RouteName.EDIT_STUDENT: "Edit student",
    RouteName.STUDENT_DETAIL: "Student",
    RouteName.ADD_MEASUREMENT: "Add measurement",
    RouteName.EDIT_MEASUREMENT: "Edit measurement",
    RouteName.ADD_SESSION: "Add session",
    RouteName.EDIT_SESSION: "Edit session",
    RouteName.CAMERA: "Camera",
    RouteName.PHOTO_REVIEW: "Review photo",
    RouteName.GALLERY_IMPORT: "Import from gallery",
    RouteName.ABOUT: "About the AI analysis",
}
