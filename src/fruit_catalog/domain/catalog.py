"""Catalog domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Nutritions:
    """Nutritional values reported for a fruit, per 100 g."""

    calories: float
    fat: float = 0.0
    sugar: float = 0.0
    carbohydrates: float = 0.0
    protein: float = 0.0


@dataclass(frozen=True)
class CatalogEntry:
    """A fruit as returned by the remote catalog."""

    id: int
    name: str
    family: str
    nutritions: Nutritions
    order: str | None = None
    genus: str | None = None
