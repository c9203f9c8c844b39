"""Render pipeline: document session, render task controller and navigation."""

from .document_session import (
    CancelToken,
    DocumentError,
    DocumentSession,
    OpenError,
    PageBoundsError,
    RenderCancelled,
    RenderError,
)
from .render_controller import RenderTask, RenderTaskController, TaskOutcome

__all__ = [
    "CancelToken",
    "DocumentError",
    "DocumentSession",
    "OpenError",
    "PageBoundsError",
    "RenderCancelled",
    "RenderError",
    "RenderTask",
    "RenderTaskController",
    "TaskOutcome",
]
