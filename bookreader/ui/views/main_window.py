"""Main window for the Book Reader UI."""

import logging

from PySide6.QtWidgets import QMainWindow, QStatusBar

from ...config import get_app_name
from ...models.viewer_state import ViewerPhase, ViewerState
from ..input_surface import InputSurface
from ..services.viewer_bridge import ViewerBridge
from .pdf_viewer import PDFViewer

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """Main application window hosting one page viewer."""

    def __init__(self, bridge: ViewerBridge):
        super().__init__()
        self.setWindowTitle(get_app_name())
        self.resize(900, 1000)

        self.bridge = bridge
        viewer = bridge.viewer
        self.input_surface = InputSurface(viewer, copy_protection=viewer.profile.copy_protection)
        self.pdf_viewer = PDFViewer(self.input_surface)
        self.setCentralWidget(self.pdf_viewer)
        self.setStatusBar(QStatusBar())

        bridge.viewChanged.connect(self.pdf_viewer.set_view_model)
        bridge.stateChanged.connect(self._on_state_changed)
        self.pdf_viewer.set_view_model(viewer.view())
        self.pdf_viewer.setFocus()

    def _on_state_changed(self, state: ViewerState) -> None:
        title = state.title or state.document_id
        self.setWindowTitle(f"{title} - {get_app_name()}" if title else get_app_name())

        if state.phase == ViewerPhase.ERROR:
            self.statusBar().showMessage(state.error_message or "")
        elif state.phase == ViewerPhase.RENDERING:
            self.statusBar().showMessage(f"Rendering page {state.current_page}...")
        elif state.phase == ViewerPhase.READY:
            self.statusBar().showMessage(
                f"Page {state.current_page} of {state.page_count}", 3000
            )
        else:
            self.statusBar().clearMessage()
