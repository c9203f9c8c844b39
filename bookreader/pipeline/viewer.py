"""Document viewer: loads a document and drives navigation, rendering and state.

Data flows one way: navigation calls -> NavigationState -> RenderTaskController
-> DocumentSession -> committed Frame. Viewer state is published to
subscribers after every change. Everything runs on one event loop; only
MuPDF and HTTP calls leave it, and their results come back through awaits.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from ..api.client import AcquisitionError
from ..auth.credentials import AccessDeniedError, CredentialProvider
from ..config.profile_loader import ViewerProfile
from ..config.profile_manager import get_profile
from ..models.raster import Frame
from ..models.render_request import RenderRequest
from ..models.viewer_state import ErrorCategory, ViewerPhase, ViewerState
from ..ui.view_model import ACCESS_DENIED_MESSAGE, ViewModel, project
from .document_session import DocumentError, DocumentSession, OpenError
from .navigation import NavigationState
from .render_controller import RenderTaskController
from .view_strategy import get_strategy

logger = logging.getLogger(__name__)

Subscriber = Callable[[ViewerState, Optional[Frame]], None]


class DocumentViewer:
    """One viewer instance: one document session, one render controller.

    Args:
        client: Document client used by load() (object with fetch_document)
        credentials: Access token provider used by load()
        profile: Viewer profile (active profile if None)
        session: Document session (new session if None)
        strategy: View strategy (from profile.view_mode if None)
    """

    def __init__(
        self,
        client=None,
        credentials: Optional[CredentialProvider] = None,
        profile: Optional[ViewerProfile] = None,
        session: Optional[DocumentSession] = None,
        strategy=None,
    ) -> None:
        self.profile = profile or get_profile()
        self.client = client
        self.credentials = credentials or CredentialProvider()
        self.session = session or DocumentSession()
        self.strategy = strategy or get_strategy(self.profile.view_mode)
        self.controller = RenderTaskController(
            self.session,
            self.strategy,
            on_started=self._on_render_started,
            on_commit=self._on_render_committed,
            on_failure=self._on_render_failed,
        )
        self.navigation: Optional[NavigationState] = None
        self._state = ViewerState(zoom=self.profile.zoom.default)
        self._subscribers: List[Subscriber] = []
        self._load_generation = 0

    @property
    def state(self) -> ViewerState:
        return self._state

    @property
    def frame(self) -> Optional[Frame]:
        """Last committed frame."""
        return self.controller.committed

    def view(self) -> ViewModel:
        return project(self._state, self.frame, self.strategy, self.profile.zoom)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for (state, frame) updates. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def load(
        self,
        document_id: str,
        initial_page: int = 1,
        initial_zoom: Optional[float] = None,
        title: str = "",
    ) -> bool:
        """Fetch and open a document, then render the initial page.

        Returns:
            True if the document opened; errors end up in the ERROR phase
        """
        generation = self._begin_load(document_id=document_id, title=title)

        try:
            token = self.credentials.get_access_token()
        except AccessDeniedError as e:
            logger.warning(f"Access denied for document {document_id}: {e}")
            self._fail_load(generation, ErrorCategory.ACCESS, ACCESS_DENIED_MESSAGE)
            return False

        try:
            if self.client is None:
                raise AcquisitionError("No document service configured")
            data = await asyncio.to_thread(self.client.fetch_document, document_id, token)
        except AcquisitionError as e:
            logger.error(f"Failed to fetch document {document_id}: {e}")
            self._fail_load(generation, ErrorCategory.FETCH, f"Failed to load document: {e}")
            return False

        if generation != self._load_generation:
            logger.debug(f"Discarded superseded fetch of document {document_id}")
            return False

        return await self._open(generation, data, initial_page, initial_zoom)

    async def load_bytes(
        self,
        data: Optional[bytes],
        initial_page: int = 1,
        initial_zoom: Optional[float] = None,
        title: str = "",
    ) -> bool:
        """Open document bytes that are already at hand (no credential or fetch)."""
        generation = self._begin_load(title=title)
        return await self._open(generation, data, initial_page, initial_zoom)

    async def close(self) -> None:
        """Stop rendering and release the document."""
        self._load_generation += 1
        self.navigation = None
        await self.controller.aclose()
        self.controller.reset()
        await self.session.close_async()
        self._set_state(ViewerState(zoom=self.profile.zoom.default))

    async def wait_rendered(self) -> None:
        """Wait until the render for the latest request has finished."""
        await self.controller.wait_idle()

    # Navigation, ignored until a document is open or after a document-level error

    def go_to_page(self, page: int) -> bool:
        navigation = self._interactive()
        return navigation.go_to_page(page) if navigation else False

    def next_page(self) -> bool:
        navigation = self._interactive()
        return navigation.next_page() if navigation else False

    def prev_page(self) -> bool:
        navigation = self._interactive()
        return navigation.prev_page() if navigation else False

    def zoom_in(self) -> bool:
        navigation = self._interactive()
        return navigation.zoom_in() if navigation else False

    def zoom_out(self) -> bool:
        navigation = self._interactive()
        return navigation.zoom_out() if navigation else False

    def set_zoom(self, zoom: float) -> bool:
        navigation = self._interactive()
        return navigation.set_zoom(zoom) if navigation else False

    def retry_page(self) -> bool:
        """Render the current page again after a render error."""
        navigation = self._interactive()
        if navigation is None or self._state.error_category != ErrorCategory.RENDER:
            return False
        navigation.refresh()
        return True

    def _interactive(self) -> Optional[NavigationState]:
        if self.navigation is None or self._state.is_blocked:
            return None
        return self.navigation

    def _begin_load(self, document_id: Optional[str] = None, title: str = "") -> int:
        self._load_generation += 1
        self.navigation = None
        self.controller.reset()
        self._set_state(ViewerState(
            zoom=self.profile.zoom.default,
            phase=ViewerPhase.LOADING,
            document_id=document_id,
            title=title,
        ))
        logger.info(f"Loading document {document_id or '(local)'}")
        return self._load_generation

    async def _open(
        self,
        generation: int,
        data: Optional[bytes],
        initial_page: int,
        initial_zoom: Optional[float],
    ) -> bool:
        try:
            handle = await self.session.decode_async(data)
        except OpenError as e:
            logger.error(f"Failed to open document: {e}")
            if generation == self._load_generation:
                await self.session.close_async()
            self._fail_load(generation, ErrorCategory.OPEN, f"Could not open document: {e}")
            return False

        # Decoding ran off the loop; only the latest load may install its handle
        if generation != self._load_generation:
            logger.debug("Discarded superseded document load")
            await self.session.discard_async(handle)
            return False
        await self.session.install_async(handle)
        if generation != self._load_generation:
            return False

        self.navigation = NavigationState(
            handle.page_count,
            self._submit,
            limits=self.profile.zoom,
            page=initial_page,
            zoom=initial_zoom,
            on_change=self._on_navigation_changed,
        )
        self._set_state(self._state.evolve(
            page_count=handle.page_count,
            current_page=self.navigation.current_page,
            zoom=self.navigation.zoom,
            phase=ViewerPhase.READY,
        ))
        self.navigation.refresh()
        return True

    def _fail_load(self, generation: int, category: ErrorCategory, message: str) -> None:
        if generation != self._load_generation:
            return
        self._set_state(self._state.evolve(
            phase=ViewerPhase.ERROR,
            error_category=category,
            error_message=message,
        ))

    def _submit(self, request: RenderRequest) -> None:
        self.controller.submit(request)

    def _on_navigation_changed(self, navigation: NavigationState) -> None:
        self._state = self._state.evolve(
            current_page=navigation.current_page,
            zoom=navigation.zoom,
        )

    def _on_render_started(self, request: RenderRequest) -> None:
        self._set_state(self._state.evolve(
            phase=ViewerPhase.RENDERING,
            error_category=None,
            error_message=None,
        ))

    def _on_render_committed(self, frame: Frame) -> None:
        self._set_state(self._state.evolve(phase=ViewerPhase.READY))

    def _on_render_failed(self, request: RenderRequest, error: DocumentError) -> None:
        self._set_state(self._state.evolve(
            phase=ViewerPhase.ERROR,
            error_category=ErrorCategory.RENDER,
            error_message=f"Error rendering page {request.page_index}: {error}",
        ))

    def _set_state(self, state: ViewerState) -> None:
        self._state = state
        frame = self.frame
        for callback in list(self._subscribers):
            callback(state, frame)
