"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from fruit_catalog.api.models import AttachmentPayload, FruitPayload, LocationPayload
from fruit_catalog.app_logging import configure_logging
from fruit_catalog.containers import AppContainer
from fruit_catalog.domain.attachments import CaptureSource, GeoPoint, LocationSample
from fruit_catalog.errors import CatalogFetchError, ReportError
from fruit_catalog.services.reports import REPORT_FILENAME


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        await state_container.catalog_service.try_refresh()
        restored = await run_in_threadpool(
            state_container.attachment_registry.restore_from_disk
        )
        logger.info("Restored %s attachments from disk", restored)
        state_container.location_observer.start()
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/fruits")
    async def list_fruits(request: Request) -> list[FruitPayload]:
        """Return the catalog in remote order."""
        state_container: AppContainer = request.app.state.container
        registry = state_container.attachment_registry
        return [
            FruitPayload.from_entry(entry, has_photo=entry.name in registry)
            for entry in state_container.catalog_service.entries
        ]

    @app.post("/fruits/refresh")
    async def refresh_fruits(request: Request) -> dict[str, int]:
        """Re-fetch the catalog from the remote service."""
        state_container: AppContainer = request.app.state.container
        try:
            entries = await state_container.catalog_service.refresh()
        except CatalogFetchError as exc:
            logger.warning("Catalog refresh failed: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Could not load fruits",
            ) from exc
        return {"count": len(entries)}

    @app.get("/fruits/{name:path}/photo")
    async def get_photo(name: str, request: Request) -> Response:
        """Return the attached photo bytes."""
        state_container: AppContainer = request.app.state.container
        info = state_container.attachment_registry.get(name)
        if info is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return Response(
            content=info.image,
            media_type="image/jpeg",
            headers={
                "X-Captured-At": info.captured_at.isoformat(),
                "X-Capture-Source": info.source.value,
            },
        )

    @app.get("/fruits/{name:path}/photo/info")
    async def get_photo_info(name: str, request: Request) -> AttachmentPayload:
        """Return the capture metadata of the attached photo."""
        state_container: AppContainer = request.app.state.container
        info = state_container.attachment_registry.get(name)
        if info is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return AttachmentPayload.from_info(name, info)

    @app.put("/fruits/{name:path}/photo", status_code=status.HTTP_201_CREATED)
    async def put_photo(
        name: str,
        request: Request,
        source: CaptureSource = CaptureSource.LIBRARY,
    ) -> AttachmentPayload:
        """Attach the request body as the photo of a fruit."""
        state_container: AppContainer = request.app.state.container
        if state_container.catalog_service.get(name) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Unknown fruit"
            )
        image = await request.body()
        if not image:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image"
            )
        owner = state_container.attachment_registry.conflicting_name(name)
        if owner is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Photo file is already used by {owner}",
            )
        info = await run_in_threadpool(
            state_container.attach_photo_handler.attach, name, image, source
        )
        if info is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not save photo",
            )
        return AttachmentPayload.from_info(name, info)

    @app.delete("/fruits/{name:path}/photo", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_photo(name: str, request: Request) -> Response:
        """Remove the photo of a fruit; unknown photos are ignored."""
        state_container: AppContainer = request.app.state.container
        removed = await run_in_threadpool(
            state_container.attach_photo_handler.detach, name
        )
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not delete photo",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/location")
    async def get_location(request: Request) -> LocationPayload | None:
        """Return the most recent device location, if any."""
        state_container: AppContainer = request.app.state.container
        sample = state_container.location_observer.latest
        if sample is None:
            return None
        return LocationPayload.from_sample(sample)

    @app.post("/location", status_code=status.HTTP_202_ACCEPTED)
    async def push_location(
        payload: LocationPayload, request: Request
    ) -> dict[str, bool]:
        """Record a position reported by the device."""
        state_container: AppContainer = request.app.state.container
        sample = LocationSample(
            point=GeoPoint(latitude=payload.latitude, longitude=payload.longitude),
            recorded_at=payload.recorded_at or datetime.now(tz=UTC),
            accuracy_m=payload.accuracy_m,
        )
        accepted = state_container.location_provider.push(sample)
        return {"accepted": accepted}

    @app.get("/report.pdf")
    async def export_report(request: Request) -> Response:
        """Render and download the PDF report."""
        state_container: AppContainer = request.app.state.container
        try:
            pdf = await run_in_threadpool(state_container.export_report_handler.handle)
        except ReportError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not save PDF",
            ) from exc
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'attachment; filename="{REPORT_FILENAME}"'
            },
        )

    return app
