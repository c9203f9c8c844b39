"""Navigation and zoom state: the only source of render requests."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..config.profile_loader import ZoomLimits
from ..models.render_request import RenderRequest

logger = logging.getLogger(__name__)


class NavigationState:
    """Current page and zoom of an open document.

    Every mutation that changes (page, zoom) submits one RenderRequest;
    mutations that leave the state unchanged submit nothing. Requests are
    accepted while a render is in flight and supersede it.

    Args:
        page_count: Pages in the open document (>= 1)
        submit: Receives each new RenderRequest
        limits: Zoom bounds and step
        page: Initial page (clamped)
        zoom: Initial zoom (clamped, default limits.default)
        on_change: Called after every change, before the request is submitted
    """

    def __init__(
        self,
        page_count: int,
        submit: Callable[[RenderRequest], object],
        limits: Optional[ZoomLimits] = None,
        page: int = 1,
        zoom: Optional[float] = None,
        on_change: Optional[Callable[["NavigationState"], None]] = None,
    ) -> None:
        if page_count < 1:
            raise ValueError(f"page_count must be >= 1, got {page_count}")
        self.page_count = page_count
        self.limits = limits or ZoomLimits()
        self._submit = submit
        self._on_change = on_change
        self._page = self._clamp_page(page)
        self._zoom = self.limits.clamp(self.limits.default if zoom is None else zoom)

    @property
    def current_page(self) -> int:
        return self._page

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def can_go_back(self) -> bool:
        return self._page > 1

    @property
    def can_go_forward(self) -> bool:
        return self._page < self.page_count

    @property
    def can_zoom_in(self) -> bool:
        return self._zoom < self.limits.maximum

    @property
    def can_zoom_out(self) -> bool:
        return self._zoom > self.limits.minimum

    def request(self) -> RenderRequest:
        return RenderRequest(page_index=self._page, scale=self._zoom)

    def refresh(self) -> RenderRequest:
        """Submit the current state unconditionally (first render)."""
        request = self.request()
        self._submit(request)
        return request

    def go_to_page(self, page: int) -> bool:
        """Move to page, clamped to [1, page_count].

        Returns:
            True if the page changed and a render was requested
        """
        target = self._clamp_page(page)
        if target != page:
            logger.debug(f"Clamped page {page} to {target}")
        return self._apply(target, self._zoom)

    def next_page(self) -> bool:
        if not self.can_go_forward:
            return False
        return self.go_to_page(self._page + 1)

    def prev_page(self) -> bool:
        if not self.can_go_back:
            return False
        return self.go_to_page(self._page - 1)

    def zoom_in(self) -> bool:
        return self.set_zoom(self._zoom + self.limits.step)

    def zoom_out(self) -> bool:
        return self.set_zoom(self._zoom - self.limits.step)

    def set_zoom(self, zoom: float) -> bool:
        """Set zoom, clamped to the configured limits.

        Returns:
            True if the zoom changed and a render was requested
        """
        return self._apply(self._page, self.limits.clamp(zoom))

    def _clamp_page(self, page: int) -> int:
        return min(max(int(page), 1), self.page_count)

    def _apply(self, page: int, zoom: float) -> bool:
        if page == self._page and zoom == self._zoom:
            return False
        self._page = page
        self._zoom = zoom
        if self._on_change:
            self._on_change(self)
        self._submit(self.request())
        return True
