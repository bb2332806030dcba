"""Command handlers invoked by the presentation layer."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from fruit_catalog.domain.attachments import AttachmentInfo, CaptureSource
from fruit_catalog.services.attachments import AttachmentRegistry
from fruit_catalog.services.catalog import CatalogService
from fruit_catalog.services.location import LocationObserver
from fruit_catalog.services.reports import ReportGenerator

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class AttachPhotoHandler:
    """Attach or detach the photo of a catalog entry."""

    registry: AttachmentRegistry
    location_observer: LocationObserver
    clock: Callable[[], datetime] = field(default=_utcnow)

    def attach(
        self, name: str, image: bytes, source: CaptureSource
    ) -> AttachmentInfo | None:
        """Attach a new photo, stamped with the current time and location.

        Returns the stored attachment, or None when it could not be persisted.
        """
        sample = self.location_observer.latest
        info = AttachmentInfo(
            image=image,
            captured_at=self.clock(),
            location=sample.point if sample else None,
            source=source,
        )
        if not self.registry.set(name, info):
            return None
        return self.registry.get(name)

    def detach(self, name: str) -> bool:
        """Remove the photo of an entry; returns False if the file could not go."""
        return self.registry.remove(name)


@dataclass
class ExportReportHandler:
    """Render the PDF report for the current catalog."""

    catalog_service: CatalogService
    registry: AttachmentRegistry
    generator: ReportGenerator

    def handle(self) -> bytes:
        """Return the PDF bytes; ReportError propagates to the caller."""
        entries = self.catalog_service.entries
        _logger.info(
            "Exporting report for %s entries (%s with photos)",
            len(entries),
            len(self.registry),
        )
        return self.generator.generate(entries, self.registry)
