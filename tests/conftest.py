"""Shared test fixtures."""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from PIL import Image

from fruit_catalog.adapters.filesystem_photo_store import FilesystemPhotoStore, sanitize
from fruit_catalog.adapters.fruityvice_client import CatalogClient
from fruit_catalog.config import Settings
from fruit_catalog.containers import AppContainer
from fruit_catalog.errors import CatalogFetchError, PhotoDeleteError, PhotoWriteError
from fruit_catalog.services.attachments import AttachmentRegistry, PhotoStore
from fruit_catalog.services.catalog import CatalogService
from fruit_catalog.services.commands import AttachPhotoHandler, ExportReportHandler
from fruit_catalog.services.location import LocationObserver, ManualLocationProvider
from fruit_catalog.services.reports import ReportGenerator

FRUITS_PAYLOAD: list[dict[str, object]] = [
    {
        "id": 1,
        "name": "Banana",
        "family": "Musaceae",
        "order": "Zingiberales",
        "genus": "Musa",
        "nutritions": {
            "calories": 96,
            "fat": 0.2,
            "sugar": 17.2,
            "carbohydrates": 22,
            "protein": 1,
        },
    },
    {
        "id": 6,
        "name": "Apple",
        "family": "Rosaceae",
        "order": "Rosales",
        "genus": "Malus",
        "nutritions": {
            "calories": 52,
            "fat": 0.4,
            "sugar": 10.3,
            "carbohydrates": 11.4,
            "protein": 0.3,
        },
    },
]


def make_image_bytes(
    width: int = 40,
    height: int = 30,
    color: tuple[int, int, int] = (200, 30, 30),
    image_format: str = "JPEG",
) -> bytes:
    """Create an in-memory image payload."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


@dataclass
class FakeCatalogClient(CatalogClient):
    """Fake catalog client returning a fixed payload."""

    payload: list[dict[str, object]] = field(
        default_factory=lambda: list(FRUITS_PAYLOAD)
    )
    fail: bool = False
    calls: int = 0

    async def fetch_all(self) -> list[dict[str, object]]:
        self.calls += 1
        if self.fail:
            raise CatalogFetchError("network down")
        return self.payload


@dataclass
class InMemoryPhotoStore(PhotoStore):
    """In-memory photo store for tests."""

    photos: dict[str, bytes] = field(default_factory=dict)
    metadata: dict[str, dict[str, object]] = field(default_factory=dict)
    fail_writes: bool = False
    fail_deletes: bool = False

    def key_for(self, name: str) -> str:
        return sanitize(name)

    def persist(
        self, name: str, image: bytes, metadata: dict[str, object] | None = None
    ) -> bytes:
        if self.fail_writes:
            raise PhotoWriteError(name, "disk full")
        self.photos[name] = image
        if metadata is not None:
            self.metadata[name] = metadata
        return image

    def load_all(self) -> dict[str, bytes]:
        return dict(self.photos)

    def load_metadata(self, name: str) -> dict[str, object] | None:
        return self.metadata.get(name)

    def delete(self, name: str) -> None:
        if self.fail_deletes:
            raise PhotoDeleteError(name, "read-only filesystem")
        self.photos.pop(name, None)
        self.metadata.pop(name, None)


@pytest.fixture(autouse=True)
def _propagate_app_logs() -> None:
    """Let caplog see records even after configure_logging ran."""
    logging.getLogger("fruit_catalog").propagate = True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        photo_dir=tmp_path / "photos",
        report_timezone="UTC",
    )


@pytest.fixture
def catalog_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def photo_store() -> InMemoryPhotoStore:
    return InMemoryPhotoStore()


def build_test_container(
    settings: Settings, catalog_client: CatalogClient, photo_store: PhotoStore
) -> AppContainer:
    """Wire an AppContainer around the given fakes."""
    catalog_service = CatalogService(catalog_client)
    registry = AttachmentRegistry(photo_store)
    location_provider = ManualLocationProvider(enabled=settings.location_enabled)
    location_observer = LocationObserver(location_provider)

    async def close_resources() -> None:
        location_observer.stop()

    return AppContainer(
        settings=settings,
        catalog_service=catalog_service,
        attachment_registry=registry,
        location_provider=location_provider,
        location_observer=location_observer,
        attach_photo_handler=AttachPhotoHandler(
            registry=registry,
            location_observer=location_observer,
        ),
        export_report_handler=ExportReportHandler(
            catalog_service=catalog_service,
            registry=registry,
            generator=ReportGenerator(timezone=settings.report_timezone),
        ),
        close_resources=close_resources,
    )


@pytest.fixture
def container(
    settings: Settings,
    catalog_client: FakeCatalogClient,
    photo_store: InMemoryPhotoStore,
) -> AppContainer:
    return build_test_container(settings, catalog_client, photo_store)


@pytest.fixture
def filesystem_container(
    settings: Settings, catalog_client: FakeCatalogClient
) -> AppContainer:
    """Container whose photos are JPEG files under the settings photo dir."""
    store = FilesystemPhotoStore(settings.photo_dir, settings.jpeg_quality)
    return build_test_container(settings, catalog_client, store)
