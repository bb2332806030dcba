"""Exception types raised by the fruit catalog."""


class FruitCatalogError(Exception):
    """Base class for all fruit catalog failures."""


class CatalogFetchError(FruitCatalogError):
    """The remote catalog could not be fetched or decoded."""


class PhotoStoreError(FruitCatalogError):
    """A photo file operation failed."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{message} (fruit={name!r})")
        self.name = name


class PhotoWriteError(PhotoStoreError):
    """A photo could not be written to the durable directory."""


class PhotoDeleteError(PhotoStoreError):
    """A photo could not be removed from the durable directory."""


class ReportError(FruitCatalogError):
    """The PDF report could not be produced."""
