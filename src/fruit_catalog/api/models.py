"""Pydantic models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from fruit_catalog.domain.attachments import (
    AttachmentInfo,
    CaptureSource,
    LocationSample,
)
from fruit_catalog.domain.catalog import CatalogEntry


class NutritionsPayload(BaseModel):
    """Nutritional values of a fruit."""

    calories: float
    fat: float
    sugar: float
    carbohydrates: float
    protein: float


class FruitPayload(BaseModel):
    """A catalog entry as exposed by the API."""

    id: int
    name: str
    family: str
    order: str | None = None
    genus: str | None = None
    nutritions: NutritionsPayload
    has_photo: bool = False

    @classmethod
    def from_entry(cls, entry: CatalogEntry, has_photo: bool) -> "FruitPayload":
        return cls(
            id=entry.id,
            name=entry.name,
            family=entry.family,
            order=entry.order,
            genus=entry.genus,
            nutritions=NutritionsPayload(
                calories=entry.nutritions.calories,
                fat=entry.nutritions.fat,
                sugar=entry.nutritions.sugar,
                carbohydrates=entry.nutritions.carbohydrates,
                protein=entry.nutritions.protein,
            ),
            has_photo=has_photo,
        )


class AttachmentPayload(BaseModel):
    """Capture metadata of an attached photo."""

    name: str
    captured_at: datetime
    source: CaptureSource
    latitude: float | None = None
    longitude: float | None = None

    @classmethod
    def from_info(cls, name: str, info: AttachmentInfo) -> "AttachmentPayload":
        return cls(
            name=name,
            captured_at=info.captured_at,
            source=info.source,
            latitude=info.location.latitude if info.location else None,
            longitude=info.location.longitude if info.location else None,
        )


class LocationPayload(BaseModel):
    """A device position pushed by the client."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy_m: float | None = Field(default=None, ge=0)
    recorded_at: datetime | None = None

    @classmethod
    def from_sample(cls, sample: LocationSample) -> "LocationPayload":
        return cls(
            latitude=sample.point.latitude,
            longitude=sample.point.longitude,
            accuracy_m=sample.accuracy_m,
            recorded_at=sample.recorded_at,
        )
