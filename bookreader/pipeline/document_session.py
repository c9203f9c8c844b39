"""Document session: open PDF bytes and render single pages with PyMuPDF.

Blocking MuPDF calls run on the render engine's worker thread; the async
wrappers hand results back to the calling event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

try:
    import fitz  # pymupdf
except ImportError:
    fitz = None

from ..models.raster import Raster
from .engine import RenderEngine, get_engine

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    """Base class for document open and render failures."""
    pass


class OpenError(DocumentError):
    """Raised when document bytes cannot be opened."""
    pass


class PageBoundsError(DocumentError):
    """Raised when a page index falls outside the document."""

    def __init__(self, page_index: int, page_count: int):
        super().__init__(f"Page {page_index} is outside [1, {page_count}]")
        self.page_index = page_index
        self.page_count = page_count


class RenderError(DocumentError):
    """Raised when a page cannot be rasterised."""

    def __init__(self, page_index: int, message: str):
        super().__init__(message)
        self.page_index = page_index


class RenderCancelled(Exception):
    """Raised inside a render that was cancelled. Not an error."""
    pass


class CancelToken:
    """Thread-safe cancellation flag checked by the render worker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RenderCancelled()


class DocumentHandle:
    """An open document. Unusable once closed."""

    def __init__(self, document, page_sizes: Tuple[Tuple[float, float], ...]):
        self._document = document
        self.page_sizes = page_sizes
        self._closed = False

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def document(self):
        if self._closed:
            raise OpenError("Document handle has been closed")
        return self._document

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._document.close()


@dataclass(frozen=True)
class PageRef:
    """A page of an open document.

    Attributes:
        page_index: Page number (starts at 1)
        width: Page width in points
        height: Page height in points
        handle: Document the page belongs to
    """

    page_index: int
    width: float
    height: float
    handle: DocumentHandle = field(repr=False, compare=False)


class DocumentSession:
    """Owns at most one open DocumentHandle and renders its pages."""

    def __init__(self, engine: Optional[RenderEngine] = None) -> None:
        self._engine = engine
        self._handle: Optional[DocumentHandle] = None

    @property
    def engine(self) -> RenderEngine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    @property
    def handle(self) -> Optional[DocumentHandle]:
        return self._handle

    @property
    def page_count(self) -> int:
        return self._handle.page_count if self._handle is not None else 0

    def decode(self, data: Optional[bytes]) -> DocumentHandle:
        """Decode PDF bytes into a new handle without touching the open document.

        Args:
            data: Raw PDF bytes

        Returns:
            DocumentHandle for the opened document

        Raises:
            OpenError: If data is missing, empty, not a PDF or has no pages
            ImportError: If pymupdf (fitz) is not installed
        """
        if fitz is None:
            raise ImportError(
                "pymupdf (fitz) is required for rendering. "
                "Install with: pip install pymupdf"
            )
        if data is None:
            raise OpenError("No document data")
        if len(data) == 0:
            raise OpenError("Document is empty")

        try:
            document = fitz.open(stream=bytes(data), filetype="pdf")
        except Exception as e:
            raise OpenError(f"Could not decode document: {e}") from e

        try:
            if document.needs_pass:
                raise OpenError("Document is password protected")
            if document.page_count == 0:
                raise OpenError("Document has no pages")
            page_sizes = tuple((page.rect.width, page.rect.height) for page in document)
        except OpenError:
            document.close()
            raise
        except Exception as e:
            document.close()
            raise OpenError(f"Could not decode document: {e}") from e

        logger.info(f"Decoded document ({len(page_sizes)} pages, {len(data)} bytes)")
        return DocumentHandle(document, page_sizes)

    def install(self, handle: DocumentHandle) -> Optional[DocumentHandle]:
        """Make a decoded handle the open document.

        Returns:
            The previously open handle, still open; the caller closes it
        """
        previous, self._handle = self._handle, handle
        return previous

    def open(self, data: Optional[bytes]) -> DocumentHandle:
        """Open a PDF from bytes, replacing any open document.

        Raises:
            OpenError: If data is missing, empty, not a PDF or has no pages
        """
        handle = self.decode(data)
        previous = self.install(handle)
        if previous is not None:
            previous.close()
        return handle

    async def decode_async(self, data: Optional[bytes]) -> DocumentHandle:
        """Decode on the worker thread; the session is left unchanged."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.engine.executor, self.decode, data)

    async def install_async(self, handle: DocumentHandle) -> None:
        """Install a decoded handle and close the previous one on the worker."""
        previous = self.install(handle)
        if previous is not None:
            await self.discard_async(previous)

    async def discard_async(self, handle: DocumentHandle) -> None:
        """Close a handle that is not (or no longer) installed."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self.engine.executor, handle.close)
        logger.debug("Released document handle")

    async def open_async(self, data: Optional[bytes]) -> DocumentHandle:
        handle = await self.decode_async(data)
        await self.install_async(handle)
        return handle

    def get_page(self, page_index: int) -> PageRef:
        """Look up a page of the open document.

        Raises:
            OpenError: If no document is open
            PageBoundsError: If page_index is outside [1, page_count]
        """
        if self._handle is None:
            raise OpenError("No document is open")
        page_count = self._handle.page_count
        if page_index < 1 or page_index > page_count:
            raise PageBoundsError(page_index, page_count)
        width, height = self._handle.page_sizes[page_index - 1]
        return PageRef(page_index=page_index, width=width, height=height, handle=self._handle)

    def render_page(
        self,
        page: PageRef,
        scale: float,
        token: Optional[CancelToken] = None,
    ) -> Raster:
        """Render a page to a PNG raster sized page size x scale.

        The token is checked between MuPDF stages; a cancelled render
        returns no raster and drops its pixmap before raising.

        Raises:
            RenderCancelled: If the token was cancelled
            RenderError: If rendering fails
            OpenError: If the page's document has been closed
        """
        token = token or CancelToken()
        token.raise_if_cancelled()
        document = page.handle.document

        pix = None
        try:
            fitz_page = document.load_page(page.page_index - 1)
            token.raise_if_cancelled()
            pix = fitz_page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            token.raise_if_cancelled()
            png = pix.tobytes("png")
            raster = Raster(
                page_index=page.page_index,
                scale=scale,
                width=pix.width,
                height=pix.height,
                png=png,
            )
        except RenderCancelled:
            logger.debug(f"Render of page {page.page_index} cancelled")
            raise
        except Exception as e:
            raise RenderError(
                page.page_index,
                f"Failed to render page {page.page_index}: {e}",
            ) from e
        finally:
            pix = None
        return raster

    async def render_page_async(
        self,
        page: PageRef,
        scale: float,
        token: Optional[CancelToken] = None,
    ) -> Raster:
        token = token or CancelToken()
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self.engine.executor, self.render_page, page, scale, token
            )
        except asyncio.CancelledError:
            token.cancel()
            raise

    def close(self) -> None:
        """Release the open document."""
        self._release()

    async def close_async(self) -> None:
        """Release the open document after renders already queued on the worker."""
        handle, self._handle = self._handle, None
        if handle is not None:
            await self.discard_async(handle)

    def _release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()
            logger.debug("Released document handle")
