"""
Paginator: cut a rendered report into page-sized slices.

Greedy single pass from the top. A page normally ends one page-height below
where it starts; it ends earlier, right before a protected region, whenever
that region starts inside the page and would be cut by the page end. Content
is never reordered and pages are never padded.

A protected region that starts at the top of a page and is still taller than
a page cannot be kept whole on a normal page. If it is a leaf (no protected
region nested inside) it gets an oversize page of its own, which the PDF
composer scales down. Containers that are too tall are split at the
boundaries of their children instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from app.models.enums import RegionKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 1000


@dataclass(frozen=True)
class ProtectedRegion:
    """A span `[top, bottom)` of the raster that must land on a single page."""

    top: int
    bottom: int
    kind: RegionKind = RegionKind.PHOTO_BLOCK
    label: Optional[str] = None

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def contains(self, other: "ProtectedRegion") -> bool:
        return (
            self.top <= other.top
            and other.bottom <= self.bottom
            and (self.top, self.bottom) != (other.top, other.bottom)
        )


@dataclass(frozen=True)
class PageSlice:
    top: int
    bottom: int
    oversize: bool = False

    @property
    def height(self) -> int:
        return self.bottom - self.top


def _normalize(regions: list[ProtectedRegion], total_height: int) -> list[ProtectedRegion]:
    kept = []
    for region in regions:
        top, bottom = max(region.top, 0), min(region.bottom, total_height)
        if bottom <= top:
            continue
        if (top, bottom) != (region.top, region.bottom):
            region = ProtectedRegion(top=top, bottom=bottom, kind=region.kind, label=region.label)
        kept.append(region)
    return kept


def _leaves(regions: list[ProtectedRegion]) -> list[ProtectedRegion]:
    return [r for r in regions if not any(r.contains(o) for o in regions if o is not r)]


def compute_page_breaks(
    total_height: int,
    regions: list[ProtectedRegion],
    max_page_height: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> list[PageSlice]:
    """Split `[0, total_height)` into slices that never cut a protected region.

    The slices tile the input exactly. If the iteration cap is reached, the
    slices produced so far are returned and a warning is logged.
    """
    if max_page_height <= 0:
        raise ValueError("max_page_height must be positive")
    if total_height <= 0:
        return []

    regions = _normalize(regions, total_height)
    leaves = _leaves(regions)

    slices: list[PageSlice] = []
    current = 0
    iterations = 0

    while current < total_height:
        if iterations >= max_iterations:
            logger.warning(
                f"[PAGINATOR] Stopped after {iterations} iterations at y={current} of {total_height}; "
                f"returning {len(slices)} pages"
            )
            break
        iterations += 1

        page_end = min(current + max_page_height, total_height)

        # Pull the break back until no region starting on this page crosses it
        moved = True
        while moved:
            moved = False
            for region in regions:
                if current < region.top < page_end < region.bottom:
                    page_end = region.top
                    moved = True

        oversize = False
        cut_leaves = [r for r in leaves if r.top == current and r.bottom > page_end]
        if cut_leaves:
            region = max(cut_leaves, key=lambda r: r.bottom)
            page_end = region.bottom
            oversize = region.height > max_page_height
            if oversize:
                logger.warning(
                    f"[PAGINATOR] {region.kind.value} of {region.height}px exceeds page height "
                    f"{max_page_height}px; emitting it on an oversize page"
                )

        if page_end <= current:
            logger.warning(f"[PAGINATOR] No progress at y={current}; stopping")
            break

        slices.append(PageSlice(top=current, bottom=page_end, oversize=oversize))
        current = page_end

    return slices


def slice_raster(image: Image.Image, slices: list[PageSlice]) -> list[Image.Image]:
    """Crop the full-width strip of each slice out of the rendered report."""
    return [image.crop((0, s.top, image.width, s.bottom)) for s in slices]
