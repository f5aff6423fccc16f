"""Capture pipeline state machine (camera -> upload -> analyze -> review)."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from loguru import logger

from posture_app.api.client import TrackerApiClient
from posture_app.api.schemas import DEFAULT_DEVIATION_THRESHOLD, AnalysisResult
from posture_app.capture.sources import ImagePayload, ImageSource
from posture_app.capture.transaction import PhotoReservation
from posture_app.core.errors import CaptureError, TrackerError


class CaptureState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    REVIEWING = "reviewing"
    SAVED = "saved"
    DISCARDED = "discarded"
    ABORTED = "aborted"


BUSY_STATES = frozenset({CaptureState.CAPTURING, CaptureState.UPLOADING, CaptureState.ANALYZING})
READY_STATES = frozenset({CaptureState.IDLE, CaptureState.SAVED})


@dataclass
class Transition:
    source: CaptureState
    target: CaptureState
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ReviewPayload:
    student_id: int
    photo_id: int
    image: ImagePayload
    result: AnalysisResult
    overlay_url: Optional[str]
    flagged_axes: List[str]


class CapturePipeline:
    """Drives one student's capture flow; one capture in flight at a time."""

    def __init__(
        self,
        api: TrackerApiClient,
        source: ImageSource,
        student_id: int,
        *,
        deviation_threshold: float = DEFAULT_DEVIATION_THRESHOLD,
        on_transition: Optional[Callable[[Transition], None]] = None,
    ) -> None:
        self.api = api
        self.source = source
        self.student_id = student_id
        self.deviation_threshold = deviation_threshold
        self.on_transition = on_transition
        self.state = CaptureState.IDLE
        self.history: List[Transition] = []
        self.last_error: Optional[TrackerError] = None
        self.review: Optional[ReviewPayload] = None
        self._reservation: Optional[PhotoReservation] = None

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES

    def _move(self, target: CaptureState) -> None:
        t = Transition(self.state, target)
        self.history.append(t)
        logger.debug("capture[{}]: {} -> {}", self.student_id, t.source.value, t.target.value)
        self.state = target
        if self.on_transition:
            self.on_transition(t)

    async def _abort(self, exc: TrackerError) -> None:
        self.last_error = exc
        if self._reservation is not None:
            await self._reservation.rollback_quietly()
            self._reservation = None
        self._move(CaptureState.ABORTED)
        self._move(CaptureState.IDLE)

    async def capture(self) -> Optional[ReviewPayload]:
        """Run capture, upload and analysis. Returns None when a capture is already running.

        Raises the step's ``TrackerError`` after returning to idle; no photo
        record is left behind on failure. A review that was left without a
        decision is discarded first.
        """
        if self.state is CaptureState.REVIEWING:
            logger.info("capture[{}]: discarding unreviewed photo {}", self.student_id, self.review.photo_id if self.review else None)
            await self.retake()
        if self.state not in READY_STATES:
            logger.debug("capture[{}]: ignoring trigger while {}", self.student_id, self.state.value)
            return None
        self.last_error = None
        self.review = None
        self._move(CaptureState.CAPTURING)
        try:
            image = await self.source.capture()
        except CaptureError as exc:
            await self._abort(exc)
            raise
        except OSError as exc:
            err = CaptureError(f"Could not take the photo: {exc}")
            await self._abort(err)
            raise err from exc

        self._reservation = PhotoReservation(self.api, self.student_id, image)
        try:
            self._move(CaptureState.UPLOADING)
            photo_id = await self._reservation.reserve()
            self._move(CaptureState.ANALYZING)
            result = await self._reservation.confirm()
        except TrackerError as exc:
            await self._abort(exc)
            raise
        except Exception as exc:
            # never leave an uploaded photo behind or the pipeline stuck mid-flight
            logger.exception("capture[{}]: unexpected failure", self.student_id)
            err = TrackerError(f"The photo could not be processed: {exc}")
            await self._abort(err)
            raise err from exc

        self.review = ReviewPayload(
            student_id=self.student_id,
            photo_id=photo_id,
            image=image,
            result=result,
            overlay_url=self.api.overlay_url(result.overlay_uri),
            flagged_axes=result.angles.high_deviation_axes(self.deviation_threshold),
        )
        self._move(CaptureState.REVIEWING)
        return self.review

    def accept(self) -> ReviewPayload:
        """Keep the analyzed photo."""
        if self.state is not CaptureState.REVIEWING or self._reservation is None or self.review is None:
            raise RuntimeError(f"nothing to accept while {self.state.value}")
        self._reservation.commit()
        self._reservation = None
        self._move(CaptureState.SAVED)
        return self.review

    async def retake(self) -> None:
        """Discard the analyzed photo and go back to the camera."""
        if self.state is not CaptureState.REVIEWING:
            return
        reservation, self._reservation = self._reservation, None
        self.review = None
        # leave REVIEWING before awaiting so a second call is a no-op
        self._move(CaptureState.DISCARDED)
        if reservation is not None:
            await reservation.rollback_quietly()
        self._move(CaptureState.IDLE)
