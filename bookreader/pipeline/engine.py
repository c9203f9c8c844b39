"""Process-wide render engine: MuPDF settings and the render worker thread.

The engine is initialised once per process. ``init_engine`` applies the
MuPDF options and starts the worker; calling it again with the same options
returns the running engine, with different options it raises RuntimeError.
``get_engine`` initialises the defaults on first use.

MuPDF documents are not thread-safe, so every decode and render call runs
on the engine's single worker thread.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

try:
    import fitz  # pymupdf
except ImportError:
    fitz = None

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineOptions:
    """Options applied to MuPDF when the engine starts.

    Attributes:
        anti_aliasing: Graphics and text anti-aliasing level (0-8)
    """

    anti_aliasing: int = 8

    def __post_init__(self):
        if not 0 <= self.anti_aliasing <= 8:
            raise ValueError(f"anti_aliasing must be in [0, 8], got {self.anti_aliasing}")


class RenderEngine:
    """Owns the worker thread that runs all MuPDF calls."""

    def __init__(self, options: EngineOptions) -> None:
        if fitz is None:
            raise ImportError(
                "pymupdf (fitz) is required for rendering. "
                "Install with: pip install pymupdf"
            )
        self.options = options
        fitz.TOOLS.set_aa_level(options.anti_aliasing)
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bookreader-render")
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        if not self._closed:
            self._closed = True
            self.executor.shutdown(wait=True)


_engine: Optional[RenderEngine] = None
_engine_lock = threading.Lock()


def init_engine(options: Optional[EngineOptions] = None) -> RenderEngine:
    """Initialise the process-wide engine.

    Args:
        options: Engine options (defaults if None)

    Returns:
        The running RenderEngine

    Raises:
        RuntimeError: If the engine is already running with different options
    """
    global _engine
    options = options or EngineOptions()
    with _engine_lock:
        if _engine is not None:
            if _engine.options != options:
                raise RuntimeError(
                    f"Render engine already initialised with {_engine.options}, "
                    f"cannot re-initialise with {options}"
                )
            return _engine
        _engine = RenderEngine(options)
        logger.debug(f"Render engine started with {options}")
        return _engine


def get_engine() -> RenderEngine:
    """Get the running engine, starting it with default options if needed."""
    engine = _engine
    if engine is not None:
        return engine
    return init_engine()


def shutdown_engine() -> None:
    """Stop the worker thread. A later init_engine starts a fresh engine."""
    global _engine
    with _engine_lock:
        engine, _engine = _engine, None
    if engine is not None:
        engine.shutdown()
        logger.debug("Render engine stopped")
