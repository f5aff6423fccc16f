"""Screen controller base class and the context shared by all screens."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from posture_app.api.client import TrackerApiClient
from posture_app.capture.sources import ImageSource
from posture_app.core.config import Settings
from posture_app.navigation.navigator import Navigator
from posture_app.navigation.routes import RouteName, RouteParams

AlertSink = Callable[[str, str], None]
Confirm = Callable[[str, str], Awaitable[bool]]


def log_alert(title: str, message: str) -> None:
    logger.warning("[alert] {}: {}", title, message)


async def always_confirm(title: str, message: str) -> bool:
    return True


@dataclass
class ScreenContext:
    api: TrackerApiClient
    navigator: Navigator
    settings: Settings
    alert: AlertSink = log_alert
    confirm: Confirm = always_confirm
    image_source_factory: Optional[Callable[[], ImageSource]] = None
    # student_id -> CapturePipeline, shared by the camera and review screens
    pipelines: Dict[int, Any] = field(default_factory=dict)


class Screen:
    """Headless screen controller.

    Holds render state as plain attributes and exposes async user actions.
    Once unmounted, late responses must not touch state: use ``_set``.
    """

    route_name: RouteName
    busy = False

    def __init__(self, ctx: ScreenContext, params: RouteParams) -> None:
        self.ctx = ctx
        self.params = params
        self.mounted = True

    @property
    def api(self) -> TrackerApiClient:
        return self.ctx.api

    @property
    def navigator(self) -> Navigator:
        return self.ctx.navigator

    async def on_focus(self) -> None:
        """Called whenever the screen becomes the top of the stack."""

    def unmount(self) -> None:
        self.mounted = False

    def alert(self, title: str, message: str) -> None:
        if self.mounted:
            self.ctx.alert(title, message)

    def _set(self, **state: Any) -> bool:
        if not self.mounted:
            logger.debug("{}: dropping late update {}", type(self).__name__, sorted(state))
            return False
        for k, v in state.items():
            setattr(self, k, v)
        return True

    def go_back(self) -> None:
        if self.mounted:
            self.navigator.go_back()
