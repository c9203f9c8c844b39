"""View surface projection: ViewerState + committed frame -> what to display."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config.profile_loader import ZoomLimits
from ..models.raster import Frame
from ..models.viewer_state import ErrorCategory, ViewerPhase, ViewerState

LOADING_MESSAGE = "Loading document..."
ACCESS_DENIED_MESSAGE = "You do not have access to this book."


class ViewKind(str, Enum):
    LOADING = "loading"
    ACCESS_DENIED = "access_denied"
    ERROR = "error"
    PAGE = "page"


@dataclass(frozen=True)
class ViewModel:
    """Everything the widget needs for one repaint.

    ``frame`` is set only when it belongs to the current page and zoom.
    ``busy`` is True while the current request is still rendering.
    """

    kind: ViewKind
    message: str = ""
    frame: Optional[Frame] = None
    current_page: int = 0
    page_count: int = 0
    zoom: float = 1.0
    busy: bool = False
    can_prev: bool = False
    can_next: bool = False
    can_zoom_in: bool = False
    can_zoom_out: bool = False

    @property
    def page_label(self) -> str:
        return f"Page {self.current_page} of {self.page_count}"

    @property
    def zoom_label(self) -> str:
        return f"{round(self.zoom * 100)}%"


def project(
    state: ViewerState,
    frame: Optional[Frame],
    strategy,
    limits: ZoomLimits,
) -> ViewModel:
    """Project viewer state onto exactly one displayable view."""
    if state.phase in (ViewerPhase.IDLE, ViewerPhase.LOADING) or (
        not state.has_document and state.phase != ViewerPhase.ERROR
    ):
        return ViewModel(kind=ViewKind.LOADING, message=LOADING_MESSAGE, zoom=state.zoom)

    if state.phase == ViewerPhase.ERROR and state.error_category == ErrorCategory.ACCESS:
        return ViewModel(kind=ViewKind.ACCESS_DENIED, message=ACCESS_DENIED_MESSAGE, zoom=state.zoom)

    if state.is_blocked:
        return ViewModel(kind=ViewKind.ERROR, message=state.error_message or "", zoom=state.zoom)

    controls = dict(
        current_page=state.current_page,
        page_count=state.page_count,
        zoom=state.zoom,
        can_prev=state.current_page > 1,
        can_next=state.current_page < state.page_count,
        can_zoom_in=state.zoom < limits.maximum,
        can_zoom_out=state.zoom > limits.minimum,
    )

    if state.phase == ViewerPhase.ERROR:
        return ViewModel(kind=ViewKind.ERROR, message=state.error_message or "", **controls)

    shown = frame
    if shown is not None and not strategy.frame_matches(shown, state.current_page, state.zoom):
        shown = None
    return ViewModel(
        kind=ViewKind.PAGE,
        frame=shown,
        busy=state.phase == ViewerPhase.RENDERING,
        **controls,
    )
