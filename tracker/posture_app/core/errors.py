"""Error taxonomy shared by the API client, the capture pipeline and the screens.

Every error carries a ``user_message`` suitable for an alert. Screens catch
``TrackerError`` at the call site; nothing here is fatal to the process.
"""
from __future__ import annotations

from typing import Optional


class TrackerError(Exception):
    """Base class for all client-side failures."""

    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.user_message = message or self.default_message


class NetworkError(TrackerError):
    default_message = "The server could not be reached."


class HTTPError(TrackerError):
    def __init__(self, method: str, path: str, status_code: int, body: str = "") -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body
        detail = body.strip() or f"status {status_code}"
        super().__init__(f"{method} {path} failed: {detail}")

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class ValidationError(TrackerError):
    """A form field is missing or malformed; raised before any request."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class CaptureError(TrackerError):
    default_message = "Could not take the photo."


class UploadError(TrackerError):
    default_message = "The photo could not be uploaded."


class AnalysisError(TrackerError):
    default_message = "The posture analysis failed."


class OrphanCompensationError(TrackerError):
    """Deleting an uploaded photo after a failed analysis did not succeed."""

    def __init__(self, photo_id: int, reason: str = "") -> None:
        self.photo_id = photo_id
        super().__init__(f"Could not remove orphaned photo {photo_id}: {reason}".rstrip(": "))


class NavigationError(TrackerError):
    default_message = "Invalid navigation request."
