"""PDF report rendering for the catalog and its attached photos."""

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from fruit_catalog.domain.attachments import AttachmentInfo, GeoPoint
from fruit_catalog.domain.catalog import CatalogEntry
from fruit_catalog.errors import ReportError
from fruit_catalog.services.attachments import AttachmentRegistry

_logger = logging.getLogger(__name__)

PAGE_WIDTH = 612.0
PAGE_HEIGHT = 792.0
MARGIN = 20.0
TEXT_FONT = "Helvetica-Bold"
TEXT_FONT_SIZE = 20
MIN_TEXT_FONT_SIZE = 8
TEXT_LEADING_RATIO = 1.1
IMAGE_TOP = 160.0
IMAGE_MAX_WIDTH = PAGE_WIDTH - 2 * MARGIN
IMAGE_MAX_HEIGHT = PAGE_HEIGHT - 200.0
TEXT_BOX_WIDTH = IMAGE_MAX_WIDTH
TEXT_BOX_HEIGHT = IMAGE_TOP - MARGIN
REPORT_CREATOR = "Fruity App"
REPORT_FILENAME = "FruitsReport.pdf"


def fit_image_size(
    width: float, height: float, max_width: float, max_height: float
) -> tuple[float, float]:
    """Scale an image to the content width, clamping to the max height.

    Aspect ratio is preserved, so the result never exceeds either maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError("Image dimensions must be positive")
    aspect_ratio = width / height
    fitted_width = max_width
    fitted_height = fitted_width / aspect_ratio
    if fitted_height > max_height:
        fitted_height = max_height
        fitted_width = fitted_height * aspect_ratio
    return fitted_width, fitted_height


def format_capture_date(value: datetime, tz: tzinfo) -> str:
    """Format as a medium date and short time, e.g. 'Oct 9, 2026 at 2:37 PM'."""
    local = value.astimezone(tz)
    hour = local.hour % 12 or 12
    return (
        f"{local:%b} {local.day}, {local.year} at "
        f"{hour}:{local:%M} {'AM' if local.hour < 12 else 'PM'}"
    )


def format_location(point: GeoPoint | None) -> str:
    """Return 'Lat X, Lon Y' or 'Not available'."""
    if point is None:
        return "Not available"
    return f"Lat {point.latitude:.4f}, Lon {point.longitude:.4f}"


def _format_number(value: float) -> str:
    return f"{value:g}"


def _wrap_line(line: str, size: float, max_width: float) -> list[str]:
    wrapped: list[str] = []
    for part in simpleSplit(line, TEXT_FONT, size, max_width) or [""]:
        # simpleSplit keeps a single overlong word whole
        while stringWidth(part, TEXT_FONT, size) > max_width and len(part) > 1:
            cut = len(part) - 1
            while cut > 1 and stringWidth(part[:cut], TEXT_FONT, size) > max_width:
                cut -= 1
            wrapped.append(part[:cut])
            part = part[cut:]
        wrapped.append(part)
    return wrapped


def layout_text_block(
    lines: list[str],
    max_width: float = TEXT_BOX_WIDTH,
    max_height: float = TEXT_BOX_HEIGHT,
) -> tuple[list[str], float, float]:
    """Wrap lines to the text box, shrinking the font until the block fits.

    Returns the wrapped lines, the font size and the leading. Lines that still
    overflow at the minimum size are dropped from the bottom.
    """
    size = float(TEXT_FONT_SIZE)
    while True:
        leading = size * TEXT_LEADING_RATIO
        wrapped = [
            part for line in lines for part in _wrap_line(line, size, max_width)
        ]
        block_height = size + (len(wrapped) - 1) * leading
        if block_height <= max_height or size <= MIN_TEXT_FONT_SIZE:
            break
        size -= 1
    max_lines = max(1, int((max_height - size) // leading) + 1)
    return wrapped[:max_lines], size, leading


@dataclass
class ReportGenerator:
    """Renders one US Letter page per catalog entry that has a photo."""

    include_unattached: bool = False
    author: str = "Fruit Catalog"
    title: str = "Fruits Report"
    timezone: str = "UTC"
    compress_pages: bool = True
    _zone: ZoneInfo = field(init=False, repr=False)

    def __post_init__(self) -> None:
        try:
            self._zone = ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {self.timezone}") from exc

    def included_entries(
        self, entries: Iterable[CatalogEntry], registry: AttachmentRegistry
    ) -> list[CatalogEntry]:
        """Return the entries that get a page, in catalog order."""
        return [
            entry
            for entry in entries
            if self.include_unattached or registry.get(entry.name) is not None
        ]

    def page_lines(
        self, entry: CatalogEntry, info: AttachmentInfo | None
    ) -> list[str]:
        """Return the text block drawn at the top of an entry's page."""
        lines = [
            entry.name,
            f"Family: {entry.family}",
            f"Calories: {_format_number(entry.nutritions.calories)}",
        ]
        if info is not None:
            lines.extend(
                [
                    "Photo Date: "
                    f"{format_capture_date(info.captured_at, self._zone)}",
                    f"Source: {info.source.label}",
                    f"Location: {format_location(info.location)}",
                ]
            )
        return lines

    def generate(
        self, entries: Iterable[CatalogEntry], registry: AttachmentRegistry
    ) -> bytes:
        """Render the report and return the PDF bytes."""
        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=(PAGE_WIDTH, PAGE_HEIGHT),
            pageCompression=1 if self.compress_pages else 0,
        )
        pdf.setCreator(REPORT_CREATOR)
        pdf.setAuthor(self.author)
        pdf.setTitle(self.title)
        pages = 0
        try:
            for entry in self.included_entries(entries, registry):
                info = registry.get(entry.name)
                self._draw_page(pdf, entry, info)
                pages += 1
            pdf.save()
        except (OSError, ValueError, UnidentifiedImageError) as exc:
            _logger.exception("Could not render PDF report")
            raise ReportError(f"Could not render PDF report: {exc}") from exc
        _logger.info("Rendered PDF report with %s pages", pages)
        return buffer.getvalue()

    def _draw_page(
        self, pdf: canvas.Canvas, entry: CatalogEntry, info: AttachmentInfo | None
    ) -> None:
        lines, size, leading = layout_text_block(self.page_lines(entry, info))
        pdf.setFont(TEXT_FONT, size)
        baseline = PAGE_HEIGHT - MARGIN - size
        for line in lines:
            pdf.drawString(MARGIN, baseline, line)
            baseline -= leading
        if info is not None:
            self._draw_image(pdf, info.image)
        pdf.showPage()

    def _draw_image(self, pdf: canvas.Canvas, image: bytes) -> None:
        with Image.open(io.BytesIO(image)) as img:
            img.load()
            width, height = fit_image_size(
                img.width, img.height, IMAGE_MAX_WIDTH, IMAGE_MAX_HEIGHT
            )
            x = (PAGE_WIDTH - width) / 2
            y = PAGE_HEIGHT - IMAGE_TOP - height
            pdf.drawImage(ImageReader(img.convert("RGB")), x, y, width, height)
