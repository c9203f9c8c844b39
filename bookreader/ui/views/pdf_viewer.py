"""Page viewer component: rendered frame display with navigation and zoom toolbar."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QKeyEvent, QPixmap, QWheelEvent
from PySide6.QtWidgets import (
    QGraphicsPixmapItem,
    QGraphicsScene,
    QGraphicsView,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSizePolicy,
    QStackedWidget,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from ...models.raster import Frame
from ..input_surface import (
    KEY_C,
    KEY_EQUAL,
    KEY_LEFT,
    KEY_MINUS,
    KEY_PLUS,
    KEY_RIGHT,
    KEY_S,
    InputSurface,
    KeyPress,
)
from ..view_model import ViewKind, ViewModel

logger = logging.getLogger(__name__)

_PAGE_GAP = 12  # vertical gap between stacked pages, in pixels

_KEY_NAMES = {
    Qt.Key.Key_Left: KEY_LEFT,
    Qt.Key.Key_Right: KEY_RIGHT,
    Qt.Key.Key_Plus: KEY_PLUS,
    Qt.Key.Key_Equal: KEY_EQUAL,
    Qt.Key.Key_Minus: KEY_MINUS,
    Qt.Key.Key_C: KEY_C,
    Qt.Key.Key_S: KEY_S,
}


def key_press_from_event(event: QKeyEvent) -> Optional[KeyPress]:
    """Reduce a Qt key event to a KeyPress, or None for keys the viewer ignores."""
    name = _KEY_NAMES.get(Qt.Key(event.key()))
    if name is None:
        return None
    mods = event.modifiers()
    return KeyPress(
        key=name,
        ctrl=bool(mods & Qt.KeyboardModifier.ControlModifier),
        meta=bool(mods & Qt.KeyboardModifier.MetaModifier),
    )


class _PageGraphicsView(QGraphicsView):
    """Graphics view showing the rasters of one committed frame."""

    zoom_step = Signal(int)  # +1 zoom in, -1 zoom out

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self._frame: Optional[Frame] = None
        self._page_items: Dict[int, QGraphicsPixmapItem] = {}
        self.block_context_menu = True

        self.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)
        self.setDragMode(QGraphicsView.DragMode.ScrollHandDrag)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)

    def show_frame(self, frame: Frame, current_page: int) -> None:
        if frame is not self._frame:
            self._scene.clear()
            self._page_items.clear()
            y = 0
            width = 0
            for raster in frame.rasters:
                pixmap = QPixmap()
                if not pixmap.loadFromData(raster.png, "PNG"):
                    logger.error(f"Could not decode raster for page {raster.page_index}")
                    continue
                item = QGraphicsPixmapItem(pixmap)
                item.setPos(0, y)
                self._scene.addItem(item)
                self._page_items[raster.page_index] = item
                y += pixmap.height() + _PAGE_GAP
                width = max(width, pixmap.width())
            self._scene.setSceneRect(0, 0, width, max(0, y - _PAGE_GAP))
            self._frame = frame
            logger.debug(f"Displayed frame for {frame.request.describe()}")
        self._scroll_to(current_page)

    def clear_frame(self) -> None:
        if self._frame is not None:
            self._scene.clear()
            self._page_items.clear()
            self._frame = None

    def _scroll_to(self, page_index: int) -> None:
        item = self._page_items.get(page_index)
        if item is not None:
            self.verticalScrollBar().setValue(int(item.y()))

    def wheelEvent(self, event: QWheelEvent) -> None:
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            delta = event.angleDelta().y()
            if delta:
                self.zoom_step.emit(1 if delta > 0 else -1)
            event.accept()
            return
        super().wheelEvent(event)

    def contextMenuEvent(self, event) -> None:
        if self.block_context_menu:
            event.accept()
            return
        super().contextMenuEvent(event)


class PDFViewer(QWidget):
    """Page viewer with toolbar (prev/next page, page entry, zoom).

    Purely reactive: set_view_model() repaints from a ViewModel, and user
    input is forwarded to the InputSurface.
    """

    def __init__(self, input_surface: InputSurface, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._input = input_surface
        self._view_model: Optional[ViewModel] = None
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        toolbar = QToolBar()
        toolbar.setObjectName("pdf_viewer_toolbar")
        toolbar.setContentsMargins(2, 2, 2, 2)

        self._prev_btn = QPushButton("Previous")
        self._prev_btn.setObjectName("pdf_prev_page")
        self._next_btn = QPushButton("Next")
        self._next_btn.setObjectName("pdf_next_page")
        self._page_input = QLineEdit()
        self._page_input.setObjectName("pdf_page_input")
        self._page_input.setFixedWidth(60)
        self._page_input.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._page_total = QLabel("of 0")
        self._page_total.setObjectName("pdf_page_total")
        self._zoom_out_btn = QPushButton("Zoom out")
        self._zoom_out_btn.setObjectName("pdf_zoom_out")
        self._zoom_in_btn = QPushButton("Zoom in")
        self._zoom_in_btn.setObjectName("pdf_zoom_in")
        self._zoom_label = QLabel("100%")
        self._zoom_label.setObjectName("pdf_zoom_indicator")
        self._busy_label = QLabel("")
        self._busy_label.setObjectName("pdf_busy_indicator")
        self._busy_label.setSizePolicy(QSizePolicy.Policy.Preferred, QSizePolicy.Policy.Fixed)

        page_box = QWidget()
        page_layout = QHBoxLayout(page_box)
        page_layout.setContentsMargins(0, 0, 0, 0)
        page_layout.addWidget(QLabel("Page"))
        page_layout.addWidget(self._page_input)
        page_layout.addWidget(self._page_total)

        toolbar.addWidget(self._prev_btn)
        toolbar.addWidget(page_box)
        toolbar.addWidget(self._next_btn)
        toolbar.addSeparator()
        toolbar.addWidget(self._zoom_out_btn)
        toolbar.addWidget(self._zoom_label)
        toolbar.addWidget(self._zoom_in_btn)
        toolbar.addSeparator()
        toolbar.addWidget(self._busy_label)

        self._status = QLabel()
        self._status.setObjectName("pdf_status")
        self._status.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._status.setWordWrap(True)

        self._view = _PageGraphicsView(self)
        self._view.block_context_menu = input_surface.copy_protection

        self._stack = QStackedWidget()
        self._stack.addWidget(self._status)
        self._stack.addWidget(self._view)

        layout.addWidget(toolbar)
        layout.addWidget(self._stack)

        self._prev_btn.clicked.connect(self._on_prev_page)
        self._next_btn.clicked.connect(self._on_next_page)
        self._zoom_in_btn.clicked.connect(self._on_zoom_in)
        self._zoom_out_btn.clicked.connect(self._on_zoom_out)
        self._page_input.editingFinished.connect(self._on_page_entered)
        self._view.zoom_step.connect(self._on_zoom_step)

        self._set_controls_enabled(None)

    def set_view_model(self, view_model: ViewModel) -> None:
        self._view_model = view_model

        if view_model.kind == ViewKind.PAGE:
            self._stack.setCurrentWidget(self._view)
            if view_model.frame is not None:
                self._view.show_frame(view_model.frame, view_model.current_page)
            else:
                self._view.clear_frame()
        else:
            self._view.clear_frame()
            self._status.setText(view_model.message)
            self._status.setProperty("error", view_model.kind != ViewKind.LOADING)
            self._stack.setCurrentWidget(self._status)

        if not self._page_input.hasFocus():
            self._page_input.setText(str(view_model.current_page) if view_model.page_count else "")
        self._page_total.setText(f"of {view_model.page_count}")
        self._zoom_label.setText(view_model.zoom_label)
        self._busy_label.setText("Rendering..." if view_model.busy else "")
        self._set_controls_enabled(view_model)

    def _set_controls_enabled(self, view_model: Optional[ViewModel]) -> None:
        vm = view_model
        self._prev_btn.setEnabled(bool(vm and vm.can_prev))
        self._next_btn.setEnabled(bool(vm and vm.can_next))
        self._zoom_in_btn.setEnabled(bool(vm and vm.can_zoom_in))
        self._zoom_out_btn.setEnabled(bool(vm and vm.can_zoom_out))
        self._page_input.setEnabled(bool(vm and vm.page_count))

    def _on_prev_page(self) -> None:
        self._input.navigator.prev_page()

    def _on_next_page(self) -> None:
        self._input.navigator.next_page()

    def _on_zoom_in(self) -> None:
        self._input.navigator.zoom_in()

    def _on_zoom_out(self) -> None:
        self._input.navigator.zoom_out()

    def _on_zoom_step(self, direction: int) -> None:
        if direction > 0:
            self._on_zoom_in()
        else:
            self._on_zoom_out()

    def _on_page_entered(self) -> None:
        if not self._input.submit_page_text(self._page_input.text()):
            # Restore the current page number over ignored input
            vm = self._view_model
            self._page_input.setText(str(vm.current_page) if vm and vm.page_count else "")
        self.setFocus()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        press = key_press_from_event(event)
        if press is not None and self._input.handle_key(press):
            event.accept()
            return
        super().keyPressEvent(event)
