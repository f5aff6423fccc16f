"""Two-phase photo reservation: reserve (upload), confirm (analyze), commit or roll back.

A photo that was uploaded but never analyzed must not survive. Any failure
between ``reserve`` and ``commit`` rolls the upload back by deleting the
photo; the rollback is idempotent and a 404 counts as already rolled back.

Usage::

    async with PhotoReservation(api, student_id, image) as res:
        await res.reserve()
        result = await res.confirm()
        res.commit()
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from loguru import logger

from posture_app.api.client import TrackerApiClient
from posture_app.api.schemas import AnalysisResult
from posture_app.capture.sources import ImagePayload
from posture_app.core.errors import OrphanCompensationError, TrackerError


class ReservationState(str, Enum):
    PENDING = "pending"
    RESERVED = "reserved"
    CONFIRMED = "confirmed"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class PhotoReservation:
    def __init__(self, api: TrackerApiClient, student_id: int, image: ImagePayload) -> None:
        self.api = api
        self.student_id = student_id
        self.image = image
        self.state = ReservationState.PENDING
        self.photo_id: Optional[int] = None
        self.result: Optional[AnalysisResult] = None

    def _expect(self, *states: ReservationState) -> None:
        if self.state not in states:
            raise RuntimeError(f"reservation is {self.state.value}, expected one of {[s.value for s in states]}")

    async def reserve(self) -> int:
        """Upload the image; the photo now exists server-side."""
        self._expect(ReservationState.PENDING)
        self.photo_id = await self.api.upload_photo(self.student_id, self.image)
        self.state = ReservationState.RESERVED
        return self.photo_id

    async def confirm(self) -> AnalysisResult:
        """Run the analysis for the reserved photo."""
        self._expect(ReservationState.RESERVED)
        assert self.photo_id is not None
        self.result = await self.api.analyze_photo(self.photo_id, self.image)
        self.state = ReservationState.CONFIRMED
        return self.result

    def commit(self) -> None:
        self._expect(ReservationState.CONFIRMED)
        self.state = ReservationState.COMMITTED
        logger.info("Photo {} committed for student {}", self.photo_id, self.student_id)

    async def rollback(self) -> None:
        """Delete the uploaded photo unless committed. Safe to call repeatedly."""
        if self.state in (ReservationState.COMMITTED, ReservationState.ROLLED_BACK):
            return
        if self.photo_id is None:
            self.state = ReservationState.ROLLED_BACK
            return
        try:
            await self.api.delete_photo(self.photo_id)
        except TrackerError as exc:
            raise OrphanCompensationError(self.photo_id, exc.user_message) from exc
        self.state = ReservationState.ROLLED_BACK
        logger.info("Photo {} rolled back", self.photo_id)

    async def rollback_quietly(self) -> bool:
        """Best-effort rollback; compensation failures are logged, never raised."""
        try:
            await self.rollback()
        except OrphanCompensationError as exc:
            logger.error("{}", exc.user_message)
            return False
        return True

    async def __aenter__(self) -> "PhotoReservation":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and self.state is not ReservationState.COMMITTED:
            await self.rollback_quietly()
