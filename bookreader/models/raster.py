"""Raster and frame data models produced by page rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Tuple

if TYPE_CHECKING:
    from .render_request import RenderRequest


@dataclass(frozen=True)
class Raster:
    """A rendered page image.

    Attributes:
        page_index: Page number the raster was rendered from (starts at 1)
        scale: Zoom factor used for rendering
        width: Width in pixels
        height: Height in pixels
        png: PNG encoded image data
    """

    page_index: int
    scale: float
    width: int
    height: int
    png: bytes = field(repr=False)


@dataclass(frozen=True)
class Frame:
    """Output committed for one render request.

    Single-page rendering commits one raster; continuous rendering commits
    every page of the document in order.
    """

    request: RenderRequest
    rasters: Tuple[Raster, ...]

    @property
    def page_index(self) -> int:
        return self.request.page_index

    @property
    def scale(self) -> float:
        return self.request.scale

    def raster_for(self, page_index: int) -> Raster:
        for raster in self.rasters:
            if raster.page_index == page_index:
                return raster
        raise KeyError(f"Frame has no raster for page {page_index}")
