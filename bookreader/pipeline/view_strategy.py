"""Rendering strategies: one visible page, or the whole document stacked.

Both strategies run through the same DocumentSession and RenderTaskController;
they only differ in which rasters make up a committed Frame.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models.raster import Frame
from ..models.render_request import RenderRequest
from .document_session import CancelToken, DocumentHandle, DocumentSession

logger = logging.getLogger(__name__)


class SinglePageStrategy:
    """Render only the requested page."""

    name = "single"

    async def render(
        self, session: DocumentSession, request: RenderRequest, token: CancelToken
    ) -> Frame:
        page = session.get_page(request.page_index)
        raster = await session.render_page_async(page, request.scale, token)
        return Frame(request=request, rasters=(raster,))

    def frame_matches(self, frame: Frame, page_index: int, zoom: float) -> bool:
        return frame.page_index == page_index and frame.scale == zoom

    def reset(self) -> None:
        pass


class ContinuousStrategy:
    """Render every page at the requested scale.

    The requested page is only the scroll anchor, so a page change at an
    unchanged scale reuses the rasters of the last complete frame.
    """

    name = "continuous"

    def __init__(self) -> None:
        self._last: Optional[Frame] = None
        self._last_handle: Optional[DocumentHandle] = None

    async def render(
        self, session: DocumentSession, request: RenderRequest, token: CancelToken
    ) -> Frame:
        # Bounds check on the anchor page before any work
        session.get_page(request.page_index)

        last = self._last
        if (
            last is not None
            and self._last_handle is session.handle
            and last.scale == request.scale
        ):
            logger.debug(f"Reusing {len(last.rasters)} rasters for {request.describe()}")
            return Frame(request=request, rasters=last.rasters)

        rasters = []
        for page_index in range(1, session.page_count + 1):
            token.raise_if_cancelled()
            page = session.get_page(page_index)
            rasters.append(await session.render_page_async(page, request.scale, token))

        frame = Frame(request=request, rasters=tuple(rasters))
        self._last = frame
        self._last_handle = session.handle
        return frame

    def frame_matches(self, frame: Frame, page_index: int, zoom: float) -> bool:
        return frame.scale == zoom and any(r.page_index == page_index for r in frame.rasters)

    def reset(self) -> None:
        self._last = None
        self._last_handle = None


def get_strategy(view_mode: str):
    """Create the strategy for a profile view mode ("single" or "continuous")."""
    if view_mode == "single":
        return SinglePageStrategy()
    if view_mode == "continuous":
        return ContinuousStrategy()
    raise ValueError(f"Unknown view mode: {view_mode}")
