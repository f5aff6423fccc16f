"""Still image sources for the capture pipeline (camera or file)."""
from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

from loguru import logger

try:  # Optional dependency on headless hosts
    import cv2  # type: ignore
except Exception:  # pragma: no cover
    cv2 = None  # type: ignore

from posture_app.core.config import Settings
from posture_app.core.errors import CaptureError


@dataclass(frozen=True)
class ImagePayload:
    content: bytes
    filename: str = "photo.jpg"
    content_type: str = "image/jpeg"
    origin: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ImagePayload":
        p = Path(path).expanduser()
        if not p.is_file():
            raise CaptureError(f"File does not exist: {p}")
        try:
            content = p.read_bytes()
        except OSError as exc:
            raise CaptureError(f"Could not read {p}: {exc}") from exc
        if not content:
            raise CaptureError(f"File is empty: {p}")
        content_type = mimetypes.guess_type(p.name)[0] or "image/jpeg"
        return cls(content=content, filename=p.name, content_type=content_type, origin=str(p))


class ImageSource(Protocol):
    async def capture(self) -> ImagePayload: ...


class FileImageSource:
    """Serves an image already on disk, as a gallery pick would."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    async def capture(self) -> ImagePayload:
        return await asyncio.to_thread(ImagePayload.from_path, self.path)


class CameraImageSource:
    """Grabs a single frame from an OpenCV camera and encodes it as JPEG."""

    def __init__(
        self,
        index: int = 0,
        *,
        width: int = 1280,
        height: int = 720,
        jpeg_quality: int = 85,
    ) -> None:
        self.index = index
        self.width = width
        self.height = height
        self.jpeg_quality = max(30, min(95, int(jpeg_quality)))

    @classmethod
    def from_settings(cls, settings: Settings) -> "CameraImageSource":
        return cls(
            settings.camera_index,
            width=settings.camera_width,
            height=settings.camera_height,
            jpeg_quality=settings.camera_jpeg_quality,
        )

    async def capture(self) -> ImagePayload:
        return await asyncio.to_thread(self._grab)

    def _grab(self) -> ImagePayload:  # pragma: no cover - hardware path
        if cv2 is None:
            raise CaptureError("OpenCV is not installed; camera capture is unavailable.")
        cap = cv2.VideoCapture(int(self.index))
        try:
            if not cap or not cap.isOpened():
                raise CaptureError(f"Camera {self.index} could not be opened.")
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(self.width))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(self.height))
            ok, frame = cap.read()
            if not ok or frame is None:
                raise CaptureError("Camera read failed.")
            success, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
            if not success:
                raise CaptureError("Could not encode the captured frame.")
            logger.debug("Captured frame {}x{} from camera {}", frame.shape[1], frame.shape[0], self.index)
            return ImagePayload(content=buffer.tobytes(), filename="capture.jpg", origin=f"camera:{self.index}")
        finally:
            if cap is not None:
                cap.release()
