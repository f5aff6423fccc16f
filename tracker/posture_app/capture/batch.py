"""Sequential gallery import: upload + analyze each selected image in order."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from loguru import logger

from posture_app.api.client import TrackerApiClient
from posture_app.api.schemas import DEFAULT_DEVIATION_THRESHOLD, AnalysisResult
from posture_app.capture.sources import ImagePayload
from posture_app.capture.transaction import PhotoReservation
from posture_app.core.errors import TrackerError, ValidationError

ImportItem = Union[ImagePayload, str, Path]


@dataclass
class ImportEntry:
    index: int
    origin: str
    photo_id: Optional[int] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None

    def flagged_axes(self, threshold: float = DEFAULT_DEVIATION_THRESHOLD) -> List[str]:
        return self.result.angles.high_deviation_axes(threshold) if self.result else []


def _origin(item: ImportItem) -> str:
    if isinstance(item, ImagePayload):
        return item.origin or item.filename
    return str(item)


class GalleryBatchImporter:
    def __init__(self, api: TrackerApiClient, student_id: int, *, limit: int = 50) -> None:
        self.api = api
        self.student_id = student_id
        self.limit = limit

    def check_selection(self, items: Sequence[ImportItem]) -> None:
        if not items:
            raise ValidationError("No photo selected.", field="photos")
        if len(items) > self.limit:
            raise ValidationError(f"At most {self.limit} photos can be imported at once.", field="photos")

    async def _import_one(self, index: int, item: ImportItem) -> ImportEntry:
        entry = ImportEntry(index=index, origin=_origin(item))
        image = item if isinstance(item, ImagePayload) else await asyncio.to_thread(ImagePayload.from_path, item)
        async with PhotoReservation(self.api, self.student_id, image) as res:
            entry.photo_id = await res.reserve()
            entry.result = await res.confirm()
            res.commit()
        return entry

    async def run(
        self,
        items: Sequence[ImportItem],
        on_progress: Optional[Callable[[ImportEntry], None]] = None,
    ) -> List[ImportEntry]:
        """Import ``items`` one after another; a failed image never stops the batch."""
        self.check_selection(items)
        entries: List[ImportEntry] = []
        for index, item in enumerate(items):
            try:
                entry = await self._import_one(index, item)
            except TrackerError as exc:
                logger.warning("import[{}] #{} {} failed: {}", self.student_id, index, _origin(item), exc.user_message)
                entry = ImportEntry(index=index, origin=_origin(item), error=exc.user_message)
            entries.append(entry)
            if on_progress:
                on_progress(entry)
        ok = sum(1 for e in entries if e.ok)
        logger.info("import[{}]: {}/{} photos analyzed", self.student_id, ok, len(entries))
        return entries
