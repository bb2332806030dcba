"""In-memory attachment registry kept in sync with the photo store."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol

from fruit_catalog.domain.attachments import AttachmentInfo, CaptureSource, GeoPoint
from fruit_catalog.errors import PhotoDeleteError, PhotoWriteError

_logger = logging.getLogger(__name__)


class PhotoStore(Protocol):
    """Durable storage for one photo per catalog entry."""

    def key_for(self, name: str) -> str:
        """Return the storage key a name is filed under."""

    def persist(
        self, name: str, image: bytes, metadata: dict[str, object] | None = None
    ) -> bytes:
        """Write the photo (and optional metadata) and return the stored bytes."""

    def load_all(self) -> dict[str, bytes]:
        """Return every decodable persisted photo keyed by name."""

    def load_metadata(self, name: str) -> dict[str, object] | None:
        """Return persisted metadata for a name, if any."""

    def delete(self, name: str) -> None:
        """Remove the photo for a name; absent photos are ignored."""


@dataclass
class AttachmentRegistry:
    """Maps catalog entry names to their attached photo.

    Every mutation goes to the photo store first and is committed in memory
    only once the store succeeded, so the two never disagree after a failed
    write.
    """

    store: PhotoStore
    _attachments: dict[str, AttachmentInfo] = field(default_factory=dict)
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock)

    def get(self, name: str) -> AttachmentInfo | None:
        """Return the attachment for a name, if present."""
        return self._attachments.get(name)

    def names(self) -> list[str]:
        """Return the names that currently have an attachment."""
        return list(self._attachments)

    def __contains__(self, name: object) -> bool:
        return name in self._attachments

    def __len__(self) -> int:
        return len(self._attachments)

    def conflicting_name(self, name: str) -> str | None:
        """Return another attached name filed under the same storage key."""
        key = self.store.key_for(name)
        for other in list(self._attachments):
            if other != name and self.store.key_for(other) == key:
                return other
        return None

    def set(self, name: str, info: AttachmentInfo) -> bool:
        """Replace the attachment for a name and persist it.

        The committed attachment carries the bytes as stored. Returns False
        (leaving any previous attachment in place) when the photo could not
        be written or its storage key belongs to another name.
        """
        with self._lock_for(name):
            owner = self.conflicting_name(name)
            if owner is not None:
                _logger.warning(
                    "Not saving image for %s: its file is used by %s", name, owner
                )
                return False
            try:
                stored = self.store.persist(
                    name, info.image, metadata=_to_metadata(name, info)
                )
            except PhotoWriteError:
                _logger.exception("Error saving image for %s", name)
                return False
            self._attachments[name] = replace(info, image=stored)
        _logger.info("Saved image for %s", name)
        return True

    def remove(self, name: str) -> bool:
        """Delete the attachment for a name along with its file.

        Returns False (keeping the attachment) when the file could not be
        removed.
        """
        with self._lock_for(name):
            owner = self.conflicting_name(name)
            if name not in self._attachments and owner is not None:
                return True
            try:
                self.store.delete(name)
            except PhotoDeleteError:
                _logger.exception("Error deleting image for %s", name)
                return False
            self._attachments.pop(name, None)
        _logger.info("Deleted image for %s", name)
        return True

    def restore_from_disk(self) -> int:
        """Load persisted photos into memory and return how many were restored."""
        restored = 0
        for name, image in self.store.load_all().items():
            metadata = self.store.load_metadata(name)
            with self._lock_for(name):
                self._attachments[name] = _from_metadata(image, metadata)
            restored += 1
        _logger.info("Loaded saved images: %s", sorted(self._attachments))
        return restored

    @contextmanager
    def _lock_for(self, name: str) -> Iterator[None]:
        key = self.store.key_for(name)
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


def _to_metadata(name: str, info: AttachmentInfo) -> dict[str, object]:
    return {
        "name": name,
        "captured_at": info.captured_at.isoformat(),
        "source": info.source.value,
        "latitude": info.location.latitude if info.location else None,
        "longitude": info.location.longitude if info.location else None,
    }


def _from_metadata(image: bytes, metadata: dict[str, object] | None) -> AttachmentInfo:
    """Rebuild attachment info, defaulting whatever the metadata lacks."""
    captured_at = datetime.now(tz=UTC)
    source = CaptureSource.UNKNOWN
    location = None
    if metadata:
        captured_at = _parse_timestamp(metadata.get("captured_at")) or captured_at
        try:
            source = CaptureSource(metadata.get("source"))
        except ValueError:
            source = CaptureSource.UNKNOWN
        latitude = metadata.get("latitude")
        longitude = metadata.get("longitude")
        if isinstance(latitude, int | float) and isinstance(longitude, int | float):
            location = GeoPoint(latitude=float(latitude), longitude=float(longitude))
    return AttachmentInfo(
        image=image,
        captured_at=captured_at,
        location=location,
        source=source,
    )


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
