"""
PDF Generator Service.

Composes paginated report slices into a print-ready PDF:
- One A4 page per slice, top-margined and centred horizontally
- Slices are drawn at the full content width
- Oversize slices are scaled down to fit the page
"""

import io
import logging
from typing import Optional

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class PDFGenerator:
    """Generates the report PDF from rendered page slices."""

    def __init__(self, page_size: tuple[float, float] = A4, margin: Optional[float] = None):
        self.page_width, self.page_height = page_size
        self.margin = margin if margin is not None else get_settings().report_page_margin_pt

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_height(self) -> float:
        return self.page_height - 2 * self.margin

    def page_height_px(self, raster_width: int) -> int:
        """Raster height that fills one page when drawn at full content width."""
        return int(raster_width * self.content_height / self.content_width)

    def _fit(self, image: Image.Image) -> tuple[float, float]:
        scale = self.content_width / image.width
        width, height = self.content_width, image.height * scale
        if height > self.content_height:
            shrink = self.content_height / height
            width, height = width * shrink, self.content_height
        return width, height

    def generate(self, pages: list[Image.Image], title: Optional[str] = None) -> bytes:
        """
        Draw each slice on its own page.

        Args:
            pages: Raster slices in reading order
            title: Document title stored in the PDF metadata

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        if title:
            c.setTitle(title)

        for number, page in enumerate(pages, 1):
            width, height = self._fit(page)
            if width < self.content_width:
                logger.info(f"[REPORT] Page {number} scaled to {width / self.content_width:.0%} to fit")
            x = (self.page_width - width) / 2
            y = self.page_height - self.margin - height
            c.drawImage(ImageReader(page), x, y, width=width, height=height)
            c.showPage()

        c.save()
        return buffer.getvalue()
