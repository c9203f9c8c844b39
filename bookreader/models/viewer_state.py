"""Viewer state data model published to the views."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ViewerPhase(str, Enum):
    IDLE = "Idle"
    LOADING = "Loading"
    RENDERING = "Rendering"
    READY = "Ready"
    ERROR = "Error"


class ErrorCategory(str, Enum):
    """Where an error came from.

    ACCESS, FETCH and OPEN are document-level and end the session until the
    document is loaded again. RENDER is scoped to the current page.
    """

    ACCESS = "access"
    FETCH = "fetch"
    OPEN = "open"
    RENDER = "render"

    @property
    def is_terminal(self) -> bool:
        return self is not ErrorCategory.RENDER


@dataclass(frozen=True)
class ViewerState:
    """Snapshot of what the viewer was last asked to show.

    Attributes:
        current_page: Most recently requested page (starts at 1, 0 when no document)
        page_count: Number of pages in the open document
        zoom: Most recently requested zoom factor
        phase: Lifecycle phase
        error_category: Set when phase is ERROR
        error_message: User-facing error text
        document_id: Identifier of the loaded document, if fetched remotely
        title: Display title
    """

    current_page: int = 0
    page_count: int = 0
    zoom: float = 1.0
    phase: ViewerPhase = ViewerPhase.IDLE
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None
    document_id: Optional[str] = None
    title: str = ""

    @property
    def has_document(self) -> bool:
        return self.page_count > 0

    @property
    def is_blocked(self) -> bool:
        """True when a document-level error prevents any interaction."""
        return (
            self.phase == ViewerPhase.ERROR
            and self.error_category is not None
            and self.error_category.is_terminal
        )

    def evolve(self, **changes) -> "ViewerState":
        return dataclasses.replace(self, **changes)
