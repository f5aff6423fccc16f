from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
import pytest_asyncio
from loguru import logger

from fake_backend import FakeBackend
from posture_app.api.client import TrackerApiClient
from posture_app.capture.sources import ImagePayload
from posture_app.core.config import Settings
from posture_app.core.errors import CaptureError
from posture_app.gui.shell import App

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-body\xff\xd9"


class StaticSource:
    """Image source returning a fixed payload, optionally failing or waiting."""

    def __init__(self, filename: str = "capture.jpg", *, fail: bool = False) -> None:
        self.filename = filename
        self.fail = fail
        self.gate: Optional[asyncio.Event] = None
        self.calls = 0

    async def capture(self) -> ImagePayload:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise CaptureError("Camera read failed.")
        return ImagePayload(content=JPEG_BYTES, filename=self.filename, origin="test")


class Recorder:
    def __init__(self, answer: bool = True) -> None:
        self.alerts: List[Tuple[str, str]] = []
        self.confirms: List[Tuple[str, str]] = []
        self.answer = answer

    def alert(self, title: str, message: str) -> None:
        self.alerts.append((title, message))

    async def confirm(self, title: str, message: str) -> bool:
        self.confirms.append((title, message))
        return self.answer

    @property
    def titles(self) -> List[str]:
        return [t for t, _ in self.alerts]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return Settings(api_host="backend.test", api_port=3000, environment="test", log_level="DEBUG")


@pytest_asyncio.fixture
async def api(backend: FakeBackend, settings: Settings):
    client = TrackerApiClient.from_settings(settings, transport=backend.transport())
    yield client
    await client.aclose()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def source() -> StaticSource:
    return StaticSource()


@pytest_asyncio.fixture
async def app(api: TrackerApiClient, settings: Settings, recorder: Recorder, source: StaticSource):
    application = App(
        settings,
        api=api,
        alert=recorder.alert,
        confirm=recorder.confirm,
        image_source_factory=lambda: source,
    )
    yield application
    for screen in list(application._screens.values()):
        screen.unmount()


@pytest.fixture
def image_files(tmp_path: Path) -> List[Path]:
    paths = []
    for i in range(4):
        p = tmp_path / f"img_{i}.jpg"
        p.write_bytes(JPEG_BYTES + bytes([i]))
        paths.append(p)
    return paths


@pytest.fixture
def log_messages():
    messages: List[str] = []
    handler_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG")
    yield messages
    logger.remove(handler_id)
