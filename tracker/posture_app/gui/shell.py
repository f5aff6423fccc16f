"""Application shell: owns the API client and navigator and mounts screen controllers."""
from __future__ import annotations

from typing import Callable, Dict, Optional, Type

from loguru import logger

from posture_app.api.client import TrackerApiClient
from posture_app.capture.sources import ImageSource
from posture_app.core.config import Settings, get_settings
from posture_app.navigation.navigator import NavigationEvent, Navigator
from posture_app.navigation.routes import RouteName
from posture_app.screens.about import AboutScreen
from posture_app.screens.base import AlertSink, Confirm, Screen, ScreenContext, always_confirm, log_alert
from posture_app.screens.camera import CameraScreen, PhotoReviewScreen
from posture_app.screens.detail import StudentDetailScreen
from posture_app.screens.gallery import GalleryImportScreen
from posture_app.screens.measurements import AddMeasurementScreen, EditMeasurementScreen
from posture_app.screens.sessions import AddSessionScreen, EditSessionScreen
from posture_app.screens.students import AddStudentScreen, EditStudentScreen, StudentListScreen

SCREENS: Dict[RouteName, Type[Screen]] = {
    RouteName.STUDENT_LIST: StudentListScreen,
    RouteName.ADD_STUDENT: AddStudentScreen,
    RouteName.EDIT_STUDENT: EditStudentScreen,
    RouteName.STUDENT_DETAIL: StudentDetailScreen,
    RouteName.ADD_MEASUREMENT: AddMeasurementScreen,
    RouteName.EDIT_MEASUREMENT: EditMeasurementScreen,
    RouteName.ADD_SESSION: AddSessionScreen,
    RouteName.EDIT_SESSION: EditSessionScreen,
    RouteName.CAMERA: CameraScreen,
    RouteName.PHOTO_REVIEW: PhotoReviewScreen,
    RouteName.GALLERY_IMPORT: GalleryImportScreen,
    RouteName.ABOUT: AboutScreen,
}


class App:
    """Keeps one controller per route on the stack.

    Call ``await app.screen()`` after any navigation to get the focused
    controller; focus handlers (refreshes) run there.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        api: Optional[TrackerApiClient] = None,
        alert: AlertSink = log_alert,
        confirm: Confirm = always_confirm,
        image_source_factory: Optional[Callable[[], ImageSource]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api = api or TrackerApiClient.from_settings(self.settings)
        self.navigator = Navigator()
        self.ctx = ScreenContext(
            api=self.api,
            navigator=self.navigator,
            settings=self.settings,
            alert=alert,
            confirm=confirm,
            image_source_factory=image_source_factory,
        )
        self._screens: Dict[int, Screen] = {}
        self._focused_key: Optional[int] = None
        self.navigator.add_listener(self._on_navigation)
        logger.info("{} using backend {}", self.settings.app_name, self.api.base_url)

    def _on_navigation(self, event: NavigationEvent) -> None:
        self._focused_key = None
        for route in event.removed:
            screen = self._screens.pop(route.key, None)
            if screen is not None:
                screen.unmount()

    def _mount(self) -> Screen:
        route = self.navigator.current
        screen = self._screens.get(route.key)
        if screen is None:
            screen = SCREENS[route.name](self.ctx, route.params)
            self._screens[route.key] = screen
        return screen

    async def screen(self) -> Screen:
        """Return the focused controller, running its focus handler on change."""
        screen = self._mount()
        key = self.navigator.current.key
        if key != self._focused_key:
            self._focused_key = key
            await screen.on_focus()
        return screen

    async def aclose(self) -> None:
        for screen in self._screens.values():
            screen.unmount()
        self._screens.clear()
        await self.api.aclose()

    async def __aenter__(self) -> "App":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
