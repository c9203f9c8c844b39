"""Render request value object: which page to rasterise and at what scale."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RenderRequest:
    """Describes the desired output of one render.

    Attributes:
        page_index: Page number (starts at 1)
        scale: Zoom factor applied to the page size in points
    """

    page_index: int
    scale: float

    def __post_init__(self):
        """Validate scale is positive."""
        if self.scale <= 0:
            raise ValueError(f"Scale must be > 0, got {self.scale}")

    def describe(self) -> str:
        return f"page {self.page_index} @ {round(self.scale * 100)}%"
