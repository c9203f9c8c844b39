"""Qt bridge publishing DocumentViewer updates as signals."""

from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...models.raster import Frame
from ...models.viewer_state import ViewerState
from ...pipeline.viewer import DocumentViewer


class ViewerBridge(QObject):
    """Re-emits viewer state changes for widgets.

    Subscribers of DocumentViewer run on the asyncio loop thread, which is
    the Qt GUI thread under qasync, so the signals are delivered directly.
    """

    stateChanged = Signal(object)  # ViewerState
    viewChanged = Signal(object)   # ViewModel

    def __init__(self, viewer: DocumentViewer, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.viewer = viewer
        self._unsubscribe = viewer.subscribe(self._on_viewer_update)

    def _on_viewer_update(self, state: ViewerState, frame: Optional[Frame]) -> None:
        self.stateChanged.emit(state)
        self.viewChanged.emit(self.viewer.view())

    def detach(self) -> None:
        self._unsubscribe()
