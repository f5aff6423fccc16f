"""Gallery import screen: pick several images, analyze them one by one."""
from __future__ import annotations

from typing import List, Sequence

from posture_app.capture.batch import GalleryBatchImporter, ImportEntry, ImportItem
from posture_app.core.errors import ValidationError
from posture_app.navigation.routes import RouteName, StudentRef
from posture_app.screens.base import Screen, ScreenContext


class GalleryImportScreen(Screen):
    route_name = RouteName.GALLERY_IMPORT

    def __init__(self, ctx: ScreenContext, params: StudentRef) -> None:
        super().__init__(ctx, params)
        self.student_id = params.student_id
        self.importer = GalleryBatchImporter(ctx.api, self.student_id, limit=ctx.settings.import_selection_limit)
        self.selected: List[ImportItem] = []
        self.results: List[ImportEntry] = []
        self.progress = 0

    def select(self, items: Sequence[ImportItem]) -> bool:
        if len(items) > self.importer.limit:
            self.alert("Too many photos", f"Select at most {self.importer.limit} photos.")
            return False
        self.selected = list(items)
        self.results = []
        self.progress = 0
        return True

    def _on_progress(self, entry: ImportEntry) -> None:
        self._set(progress=entry.index + 1, results=[*self.results, entry])

    async def analyze(self) -> List[ImportEntry]:
        if self.busy:
            return []
        try:
            self.importer.check_selection(self.selected)
        except ValidationError as exc:
            self.alert("Oops", exc.user_message)
            return []
        self._set(busy=True, results=[], progress=0)
        try:
            entries = await self.importer.run(self.selected, on_progress=self._on_progress)
        finally:
            self._set(busy=False)
        self._set(results=entries)
        failed = [e for e in entries if not e.ok]
        if failed:
            self.alert(
                "Import finished with errors",
                f"{len(entries) - len(failed)} of {len(entries)} photos analyzed; "
                + ", ".join(f"#{e.index + 1}" for e in failed)
                + " failed.",
            )
        return entries

    def flagged(self, entry: ImportEntry) -> List[str]:
        return entry.flagged_axes(self.ctx.settings.deviation_threshold_deg)
