"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fruit_catalog.adapters.filesystem_photo_store import FilesystemPhotoStore
from fruit_catalog.adapters.fruityvice_client import HttpxCatalogClient
from fruit_catalog.config import Settings
from fruit_catalog.services.attachments import AttachmentRegistry
from fruit_catalog.services.catalog import CatalogService
from fruit_catalog.services.commands import AttachPhotoHandler, ExportReportHandler
from fruit_catalog.services.location import LocationObserver, ManualLocationProvider
from fruit_catalog.services.reports import ReportGenerator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: CatalogService
    attachment_registry: AttachmentRegistry
    location_provider: ManualLocationProvider
    location_observer: LocationObserver
    attach_photo_handler: AttachPhotoHandler
    export_report_handler: ExportReportHandler
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    catalog_client = HttpxCatalogClient.create(
        url=resolved_settings.catalog_url,
        timeout_seconds=resolved_settings.catalog_timeout_seconds,
    )
    catalog_service = CatalogService(catalog_client)
    photo_store = FilesystemPhotoStore(
        directory=resolved_settings.photo_dir,
        jpeg_quality=resolved_settings.jpeg_quality,
    )
    attachment_registry = AttachmentRegistry(photo_store)
    location_provider = ManualLocationProvider(
        enabled=resolved_settings.location_enabled
    )
    location_observer = LocationObserver(location_provider)
    attach_photo_handler = AttachPhotoHandler(
        registry=attachment_registry,
        location_observer=location_observer,
    )
    report_generator = ReportGenerator(
        include_unattached=resolved_settings.report_include_unattached,
        author=resolved_settings.report_author,
        title=resolved_settings.report_title,
        timezone=resolved_settings.report_timezone,
    )
    export_report_handler = ExportReportHandler(
        catalog_service=catalog_service,
        registry=attachment_registry,
        generator=report_generator,
    )

    async def close_resources() -> None:
        location_observer.stop()
        await catalog_client.close()

    return AppContainer(
        settings=resolved_settings,
        catalog_service=catalog_service,
        attachment_registry=attachment_registry,
        location_provider=location_provider,
        location_observer=location_observer,
        attach_photo_handler=attach_photo_handler,
        export_report_handler=export_report_handler,
        close_resources=close_resources,
    )
