"""
PDF Text Source Module

Supplies the text runs of a PDF page for narration.
Every PDF span becomes one run that knows the box of each of its
characters, so the position of any word can be found on screen.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from narrator.errors import RectUnavailable
from narrator.readalong.overlay import Rect
from narrator.utils import logger
from narrator.utils.config import config

Box = Tuple[float, float, float, float]


@dataclass
class Viewport:
    """Maps page coordinates to viewport coordinates."""

    zoom: float = 1.0
    scroll_x: float = 0.0
    scroll_y: float = 0.0

    def to_viewport(self, box: Box) -> Rect:
        x0, y0, x1, y1 = box
        return Rect(
            left=x0 * self.zoom - self.scroll_x,
            top=y0 * self.zoom - self.scroll_y,
            width=(x1 - x0) * self.zoom,
            height=(y1 - y0) * self.zoom,
        )


@dataclass(eq=False)
class PdfTextRun:
    """A single PDF span with per-character boxes."""

    text: str
    char_boxes: Tuple[Box, ...]
    bbox: Box
    viewport: Viewport

    def range_rect(self, start: int, end: int) -> Rect:
        if not 0 <= start < end <= len(self.char_boxes):
            raise RectUnavailable(
                f"range {start}-{end} outside run of {len(self.char_boxes)} chars"
            )
        boxes = [self.viewport.to_viewport(b) for b in self.char_boxes[start:end]]
        return Rect.enclosing(boxes)

    def bounding_rect(self) -> Rect:
        x0, y0, x1, y1 = self.bbox
        if x1 <= x0 and y1 <= y0:
            raise RectUnavailable("span has an empty bounding box")
        return self.viewport.to_viewport(self.bbox)


class PdfTextSource:
    """Text runs for each page of a PDF file."""

    def __init__(self, pdf_path: Path, zoom: Optional[float] = None):
        self.pdf_path = Path(pdf_path)
        if not self.pdf_path.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")

        self.doc = fitz.open(self.pdf_path)
        self.viewport = Viewport(zoom=zoom or config.zoom)

    @property
    def page_count(self) -> int:
        return len(self.doc)

    def runs(self, page_number: int) -> List[PdfTextRun]:
        """
        Extract the text runs of one page.

        Args:
            page_number: Page number, starting at 1

        Returns:
            Runs in the order PyMuPDF reports them
        """
        if not 1 <= page_number <= self.page_count:
            raise IndexError(f"Page {page_number} out of range 1-{self.page_count}")

        page = self.doc[page_number - 1]
        blocks = page.get_text("rawdict")["blocks"]

        runs = []
        for block in blocks:
            if block["type"] != 0:  # Not a text block
                continue
            for line in block["lines"]:
                for span in line["spans"]:
                    chars = span.get("chars", [])
                    if not chars:
                        continue
                    runs.append(PdfTextRun(
                        text="".join(c["c"] for c in chars),
                        char_boxes=tuple(tuple(c["bbox"]) for c in chars),
                        bbox=tuple(span["bbox"]),
                        viewport=self.viewport,
                    ))

        logger.debug(f"Page {page_number}: {len(runs)} text runs")
        return runs

    def scroll_to(self, x: float, y: float) -> None:
        self.viewport.scroll_x = x
        self.viewport.scroll_y = y

    def set_zoom(self, zoom: float) -> None:
        self.viewport.zoom = zoom

    def close(self) -> None:
        """Close the PDF document."""
        self.doc.close()

    def __enter__(self) -> "PdfTextSource":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

