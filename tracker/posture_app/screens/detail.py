"""Student detail: measurements, sessions and posture photo history."""
from __future__ import annotations

import asyncio
from typing import List, Optional, Set, Tuple

from loguru import logger

from posture_app.api.schemas import Measurement, PhotoRecord, PostureAnalysis, Session
from posture_app.core.errors import TrackerError
from posture_app.navigation.routes import MeasurementParams, RouteName, SessionParams, StudentRef
from posture_app.screens.base import Screen, ScreenContext


class StudentDetailScreen(Screen):
    route_name = RouteName.STUDENT_DETAIL

    def __init__(self, ctx: ScreenContext, params: StudentRef) -> None:
        super().__init__(ctx, params)
        self.student_id = params.student_id
        self.name = params.name
        self.measurements: List[Measurement] = []
        self.sessions: List[Session] = []
        self.photos: List[PhotoRecord] = []
        self.loading = True
        self.refreshing = False
        self._loaded = False
        # (kind, id) pairs already removed or being removed
        self._deleted: Set[Tuple[str, int]] = set()

    @property
    def threshold(self) -> float:
        return self.ctx.settings.deviation_threshold_deg

    async def _latest_or_none(self, photo_id: int) -> Optional[PostureAnalysis]:
        try:
            return await self.api.latest_analysis(photo_id)
        except TrackerError as exc:
            logger.warning("history of photo {} unavailable: {}", photo_id, exc.user_message)
            return None

    async def _photo_records(self) -> List[PhotoRecord]:
        photos = await self.api.list_photos(self.student_id)
        latest = await asyncio.gather(*(self._latest_or_none(p.id) for p in photos))
        return [PhotoRecord(photo=p, latest=a) for p, a in zip(photos, latest)]

    async def fetch(self, *, silent: bool = False) -> bool:
        """Load all three lists concurrently. Only the first load shows the spinner."""
        if not silent:
            self._set(loading=True)
        try:
            measurements, sessions, photos = await asyncio.gather(
                self.api.list_measurements(self.student_id),
                self.api.list_sessions(self.student_id),
                self._photo_records(),
            )
        except TrackerError as exc:
            if silent:
                logger.warning("silent refresh of student {} failed: {}", self.student_id, exc.user_message)
            else:
                self.alert("Error", exc.user_message or "Cannot load details.")
            return False
        finally:
            if not silent:
                self._set(loading=False)
        if self._set(measurements=measurements, sessions=sessions, photos=photos, _loaded=True):
            logger.debug(
                "student {}: {} measurements, {} sessions, {} photos",
                self.student_id, len(measurements), len(sessions), len(photos),
            )
        return True

    async def on_focus(self) -> None:
        await self.fetch(silent=self._loaded)

    async def refresh(self) -> None:
        """Pull-to-refresh; never shows the full-screen loader."""
        if self.refreshing:
            return
        self._set(refreshing=True)
        try:
            await self.fetch(silent=True)
        finally:
            self._set(refreshing=False)

    # ------------------------------------------------------------- deletes --

    async def _delete(self, kind: str, item_id: int, label: str) -> bool:
        key = (kind, item_id)
        if key in self._deleted:
            logger.info("{} {} already deleted; ignoring", kind, item_id)
            return False
        if not await self.ctx.confirm(f"Delete {label}", f"Delete this {label}?"):
            return False
        self._deleted.add(key)
        remove = {
            "measurement": self.api.delete_measurement,
            "session": self.api.delete_session,
            "photo": self.api.delete_photo,
        }[kind]
        try:
            await remove(item_id)
        except TrackerError as exc:
            self._deleted.discard(key)
            self.alert("Error", f"Could not delete the {label}. {exc.user_message}")
            return False
        await self.fetch(silent=True)
        return True

    async def delete_measurement(self, measurement_id: int) -> bool:
        return await self._delete("measurement", measurement_id, "measurement")

    async def delete_session(self, session_id: int) -> bool:
        return await self._delete("session", session_id, "session")

    async def delete_photo(self, photo_id: int) -> bool:
        return await self._delete("photo", photo_id, "photo")

    # ---------------------------------------------------------- navigation --

    def _ref(self) -> StudentRef:
        return StudentRef(student_id=self.student_id, name=self.name)

    def add_measurement(self) -> None:
        self.navigator.navigate(RouteName.ADD_MEASUREMENT, self._ref())

    def edit_measurement(self, measurement: Measurement) -> None:
        self.navigator.navigate(RouteName.EDIT_MEASUREMENT, MeasurementParams(measurement=measurement))

    def add_session(self) -> None:
        self.navigator.navigate(RouteName.ADD_SESSION, self._ref())

    def edit_session(self, session: Session) -> None:
        self.navigator.navigate(RouteName.EDIT_SESSION, SessionParams(session=session))

    def open_camera(self) -> None:
        self.navigator.navigate(RouteName.CAMERA, self._ref())

    def open_gallery(self) -> None:
        self.navigator.navigate(RouteName.GALLERY_IMPORT, self._ref())

    def flagged(self, record: PhotoRecord) -> List[str]:
        return record.high_deviation_axes(self.threshold)
