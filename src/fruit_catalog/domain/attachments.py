"""Attachment domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class CaptureSource(StrEnum):
    """Where an attached photo came from."""

    CAMERA = "camera"
    LIBRARY = "library"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        """Human readable label used in reports."""
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    CaptureSource.CAMERA: "Camera",
    CaptureSource.LIBRARY: "Photo Library",
    CaptureSource.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class LocationSample:
    """A single position reading from the location provider."""

    point: GeoPoint
    recorded_at: datetime
    accuracy_m: float | None = None


@dataclass(frozen=True)
class AttachmentInfo:
    """A photo attached to a catalog entry, with capture metadata."""

    image: bytes
    captured_at: datetime
    location: GeoPoint | None = None
    source: CaptureSource = CaptureSource.UNKNOWN
