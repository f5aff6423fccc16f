"""Capture package exports."""

from .batch import GalleryBatchImporter, ImportEntry
from .pipeline import CapturePipeline, CaptureState, ReviewPayload
from .sources import CameraImageSource, FileImageSource, ImagePayload
from .transaction import PhotoReservation

__all__ = [
    "CapturePipeline",
    "CaptureState",
    "ReviewPayload",
    "PhotoReservation",
    "GalleryBatchImporter",
    "ImportEntry",
    "ImagePayload",
    "FileImageSource",
    "CameraImageSource",
]
