"""Async client for the posture backend REST API.

- Base URL is injected at construction (``from_settings`` for the app)
- Transport failures become ``NetworkError``, non-2xx answers ``HTTPError``
- Upload/analyze failures are re-raised as ``UploadError``/``AnalysisError``
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, List, Optional, Type, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from posture_app.api.schemas import (
    AnalysisResult,
    Measurement,
    MeasurementIn,
    MeasurementUpdate,
    Photo,
    PostureAnalysis,
    Session,
    SessionIn,
    SessionUpdate,
    Student,
    StudentIn,
)
from posture_app.core.config import Settings
from posture_app.core.errors import AnalysisError, HTTPError, NetworkError, TrackerError, UploadError

if TYPE_CHECKING:  # pragma: no cover
    from posture_app.capture.sources import ImagePayload

M = TypeVar("M", bound=BaseModel)

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]+={0,2}")


class TrackerApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "TrackerApiClient":
        return cls(settings.base_url, timeout=settings.http_timeout, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TrackerApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------ transport --

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            r = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("{} {} failed: {}", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc
        if r.status_code >= 400:
            logger.warning("{} {} -> {} {}", method, path, r.status_code, r.text[:200])
            raise HTTPError(method, path, r.status_code, r.text[:500])
        logger.debug("{} {} -> {}", method, path, r.status_code)
        return r

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        r = await self._request(method, path, **kwargs)
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as exc:
            raise HTTPError(method, path, r.status_code, "response is not valid JSON") from exc

    async def _one(self, model: Type[M], method: str, path: str, **kwargs: Any) -> M:
        body = await self._json(method, path, **kwargs)
        try:
            return model.model_validate(body)
        except SchemaError as exc:
            logger.warning("{} {} returned an unexpected payload: {}", method, path, exc)
            raise TrackerError(f"Unexpected response from {path}.") from exc

    async def _many(self, model: Type[M], path: str) -> List[M]:
        body = await self._json("GET", path)
        # Some deployments wrap lists as {"value": [...]}
        if isinstance(body, dict) and isinstance(body.get("value"), list):
            body = body["value"]
        if body is None:
            return []
        if not isinstance(body, list):
            raise TrackerError(f"Unexpected response from {path}.")
        try:
            return [model.model_validate(item) for item in body]
        except SchemaError as exc:
            logger.warning("GET {} returned an unexpected payload: {}", path, exc)
            raise TrackerError(f"Unexpected response from {path}.") from exc

    async def _delete(self, path: str) -> bool:
        """Return False when the record was already gone."""
        try:
            await self._request("DELETE", path)
        except HTTPError as exc:
            if exc.not_found:
                logger.info("DELETE {}: already removed", path)
                return False
            raise
        return True

    # ------------------------------------------------------------- students --

    async def list_students(self) -> List[Student]:
        return await self._many(Student, "/students")

    async def create_student(self, payload: StudentIn) -> Student:
        return await self._one(Student, "POST", "/students", json=payload.model_dump(mode="json"))

    async def update_student(self, student_id: int, payload: StudentIn) -> Optional[Student]:
        body = await self._json("PUT", f"/students/{student_id}", json=payload.model_dump(mode="json"))
        return Student.model_validate(body) if isinstance(body, dict) and "id" in body else None

    async def delete_student(self, student_id: int) -> bool:
        return await self._delete(f"/students/{student_id}")

    # --------------------------------------------------------- measurements --

    async def list_measurements(self, student_id: int) -> List[Measurement]:
        return await self._many(Measurement, f"/students/{student_id}/measurements")

    async def create_measurement(self, payload: MeasurementIn) -> Measurement:
        return await self._one(Measurement, "POST", "/measurements", json=payload.model_dump(mode="json"))

    async def update_measurement(self, measurement_id: int, payload: MeasurementUpdate) -> Optional[Measurement]:
        body = await self._json("PUT", f"/measurements/{measurement_id}", json=payload.model_dump(mode="json"))
        return Measurement.model_validate(body) if isinstance(body, dict) and "id" in body else None

    async def delete_measurement(self, measurement_id: int) -> bool:
        return await self._delete(f"/measurements/{measurement_id}")

    # ------------------------------------------------------------- sessions --

    async def list_sessions(self, student_id: int) -> List[Session]:
        return await self._many(Session, f"/students/{student_id}/sessions")

    async def create_session(self, payload: SessionIn) -> Session:
        return await self._one(Session, "POST", "/sessions", json=payload.model_dump(mode="json"))

    async def update_session(self, session_id: int, payload: SessionUpdate) -> Optional[Session]:
        body = await self._json("PUT", f"/sessions/{session_id}", json=payload.model_dump(mode="json"))
        return Session.model_validate(body) if isinstance(body, dict) and "id" in body else None

    async def delete_session(self, session_id: int) -> bool:
        return await self._delete(f"/sessions/{session_id}")

    # --------------------------------------------------------------- photos --

    async def list_photos(self, student_id: int) -> List[Photo]:
        return await self._many(Photo, f"/students/{student_id}/photos")

    async def upload_photo(self, student_id: int, image: "ImagePayload") -> int:
        files = {"photo": (image.filename, image.content, image.content_type)}
        try:
            body = await self._json("POST", "/photos/upload", files=files, data={"student_id": str(student_id)})
        except TrackerError as exc:
            raise UploadError(f"Upload failed: {exc.user_message}") from exc
        photo_id = body.get("id") if isinstance(body, dict) else None
        if photo_id is None:
            raise UploadError("Upload succeeded but no photo id was returned.")
        logger.info("Uploaded photo {} for student {}", photo_id, student_id)
        return int(photo_id)

    async def delete_photo(self, photo_id: int) -> bool:
        return await self._delete(f"/photos/{photo_id}")

    # -------------------------------------------------------------- posture --

    async def analyze_photo(self, photo_id: int, image: "ImagePayload") -> AnalysisResult:
        files = {"image": (image.filename, image.content, image.content_type)}
        path = f"/posture/{photo_id}/analyze"
        try:
            body = await self._json("POST", path, files=files, data={"photo_id": str(photo_id)})
        except TrackerError as exc:
            raise AnalysisError(f"Analysis failed: {exc.user_message}") from exc
        if isinstance(body, dict) and body.get("error") and not body.get("angles"):
            raise AnalysisError(f"Analysis failed: {body['error']}")
        try:
            result = AnalysisResult.model_validate(body)
        except SchemaError as exc:
            logger.warning("POST {} returned no usable angles: {}", path, exc)
            raise AnalysisError("The analysis did not return posture angles.") from exc
        logger.info("Analyzed photo {}: {}", photo_id, result.angles.as_dict())
        return result

    async def posture_history(self, photo_id: int) -> List[PostureAnalysis]:
        return await self._many(PostureAnalysis, f"/posture/{photo_id}/history")

    async def latest_analysis(self, photo_id: int) -> Optional[PostureAnalysis]:
        history = await self.posture_history(photo_id)
        if not history:
            return None
        return max(history, key=lambda a: (a.created_at is not None, a.created_at or 0, a.id))

    def overlay_url(self, value: Optional[str]) -> Optional[str]:
        """Resolve an overlay reference to something an image widget can load."""
        if not value:
            return None
        if value.startswith(("http://", "https://", "data:")):
            return value
        # inline JPEG base64 starts with "/9j/", so check it before treating "/..." as a path
        if len(value) % 4 == 0 and _BASE64_RE.fullmatch(value):
            return f"data:image/jpeg;base64,{value}"
        if value.startswith("/"):
            return f"{self.base_url}{value}"
        return f"data:image/jpeg;base64,{value}"
