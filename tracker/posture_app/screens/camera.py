"""Camera and photo review screens built on the capture pipeline."""
from __future__ import annotations

import asyncio
from typing import List, Optional

from loguru import logger

from posture_app.api.schemas import AnalysisResult
from posture_app.capture.pipeline import CapturePipeline, CaptureState, ReviewPayload
from posture_app.capture.sources import CameraImageSource, ImageSource
from posture_app.core.errors import TrackerError
from posture_app.navigation.routes import PhotoReviewParams, RouteName, StudentRef
from posture_app.screens.base import Screen, ScreenContext

AXIS_LABELS = {
    "shoulder_tilt": "Shoulder tilt",
    "hip_tilt": "Hip tilt",
    "spine_tilt": "Spine tilt",
}


class CameraScreen(Screen):
    route_name = RouteName.CAMERA

    def __init__(self, ctx: ScreenContext, params: StudentRef, source: Optional[ImageSource] = None) -> None:
        super().__init__(ctx, params)
        self.student_id = params.student_id
        self.name = params.name
        if source is None:
            factory = ctx.image_source_factory
            source = factory() if factory else CameraImageSource.from_settings(ctx.settings)
        self.pipeline = CapturePipeline(
            ctx.api,
            source,
            self.student_id,
            deviation_threshold=ctx.settings.deviation_threshold_deg,
        )
        ctx.pipelines[self.student_id] = self.pipeline

    @property
    def busy(self) -> bool:  # type: ignore[override]
        return self.pipeline.busy

    @property
    def state(self) -> CaptureState:
        return self.pipeline.state

    async def take_photo(self) -> Optional[ReviewPayload]:
        """Capture, upload and analyze, then open the review screen."""
        if self.pipeline.busy:
            return None
        try:
            review = await self.pipeline.capture()
        except TrackerError as exc:
            self.alert("Error", exc.user_message)
            return None
        if review is None:
            return None
        if not self.mounted:
            logger.info("camera for student {} closed before analysis finished", self.student_id)
            return review
        self.navigator.navigate(
            RouteName.PHOTO_REVIEW,
            PhotoReviewParams(
                student_id=self.student_id,
                name=self.name,
                photo_id=review.photo_id,
                result=review.result,
            ),
        )
        return review

    def open_gallery(self) -> None:
        self.navigator.navigate(RouteName.GALLERY_IMPORT, StudentRef(student_id=self.student_id, name=self.name))

    def unmount(self) -> None:
        super().unmount()
        if self.ctx.pipelines.get(self.student_id) is self.pipeline and not self.pipeline.busy:
            self.ctx.pipelines.pop(self.student_id, None)


class PhotoReviewScreen(Screen):
    route_name = RouteName.PHOTO_REVIEW

    def __init__(self, ctx: ScreenContext, params: PhotoReviewParams) -> None:
        super().__init__(ctx, params)
        self.student_id = params.student_id
        self.name = params.name
        self.photo_id = params.photo_id
        self.result: AnalysisResult = params.result
        self.overlay_url = ctx.api.overlay_url(self.result.overlay_uri)
        self.flagged_axes: List[str] = self.result.angles.high_deviation_axes(ctx.settings.deviation_threshold_deg)
        self.discarding: Optional[asyncio.Task] = None

    def _pipeline(self) -> Optional[CapturePipeline]:
        pipeline = self.ctx.pipelines.get(self.student_id)
        if pipeline is None or pipeline.review is None or pipeline.review.photo_id != self.photo_id:
            return None
        return pipeline

    def unmount(self) -> None:
        """Leaving without save or retake discards the photo."""
        pipeline = self._pipeline()
        super().unmount()
        if pipeline is None or pipeline.state is not CaptureState.REVIEWING:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # the next capture discards it instead
            return
        logger.info("review of photo {} left without a decision; discarding it", self.photo_id)
        self.discarding = loop.create_task(pipeline.retake())

    def angle_rows(self) -> List[tuple[str, float, bool]]:
        """(label, degrees, flagged) for each axis."""
        return [
            (AXIS_LABELS[axis], value, axis in self.flagged_axes)
            for axis, value in self.result.angles.as_dict().items()
        ]

    async def save(self) -> None:
        pipeline = self._pipeline()
        if pipeline is not None and pipeline.state is CaptureState.REVIEWING:
            pipeline.accept()
        ref = StudentRef(student_id=self.student_id, name=self.name)
        if self.navigator.pop_to(RouteName.STUDENT_DETAIL) is None:
            self.navigator.replace(RouteName.STUDENT_DETAIL, ref)

    async def retake(self) -> None:
        pipeline = self._pipeline()
        if pipeline is not None:
            await pipeline.retake()
        else:
            logger.warning("no capture in progress for photo {}; deleting it directly", self.photo_id)
            try:
                await self.api.delete_photo(self.photo_id)
            except TrackerError as exc:
                logger.error("Could not discard photo {}: {}", self.photo_id, exc.user_message)
        if self.mounted:
            self.navigator.go_back()
