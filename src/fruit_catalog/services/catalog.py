"""Catalog service backed by the Fruityvice API."""

import logging
from dataclasses import dataclass, field

from fruit_catalog.adapters.fruityvice_client import CatalogClient
from fruit_catalog.domain.catalog import CatalogEntry, Nutritions
from fruit_catalog.errors import CatalogFetchError

_logger = logging.getLogger(__name__)


@dataclass
class CatalogService:
    """Holds the most recently fetched catalog."""

    client: CatalogClient
    _entries: list[CatalogEntry] = field(default_factory=list)

    @property
    def entries(self) -> list[CatalogEntry]:
        """Return the current catalog in remote order."""
        return list(self._entries)

    def get(self, name: str) -> CatalogEntry | None:
        """Return the entry with the given name, if present."""
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    async def refresh(self) -> list[CatalogEntry]:
        """Fetch the catalog and replace the current entries.

        Raises CatalogFetchError when the request or decoding fails; the
        previous entries are kept in that case.
        """
        payload = await self.client.fetch_all()
        try:
            entries = [_decode_entry(item) for item in payload]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise CatalogFetchError(f"Malformed catalog entry: {exc}") from exc
        self._entries = entries
        _logger.info("Loaded %s catalog entries", len(entries))
        return self.entries

    async def try_refresh(self) -> bool:
        """Refresh the catalog, logging instead of raising on failure."""
        try:
            await self.refresh()
        except CatalogFetchError:
            _logger.exception("Error loading fruits")
            return False
        return True


def _decode_entry(item: dict[str, object]) -> CatalogEntry:
    """Decode one Fruityvice JSON object."""
    nutritions = item.get("nutritions") or {}
    if not isinstance(nutritions, dict):
        raise TypeError("nutritions must be an object")
    return CatalogEntry(
        id=int(item["id"]),
        name=str(item["name"]),
        family=str(item["family"]),
        order=_optional_str(item.get("order")),
        genus=_optional_str(item.get("genus")),
        nutritions=Nutritions(
            calories=float(nutritions.get("calories", 0)),
            fat=float(nutritions.get("fat", 0)),
            sugar=float(nutritions.get("sugar", 0)),
            carbohydrates=float(nutritions.get("carbohydrates", 0)),
            protein=float(nutritions.get("protein", 0)),
        ),
    )


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)
