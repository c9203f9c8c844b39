"""Render task controller: cancel-then-replace scheduling of page renders.

Each submitted RenderRequest gets a generation number. Submitting a request
cancels the task still running for the previous one and starts a new task;
a task's outcome is applied only while its generation is the latest. The
number of outstanding tasks therefore stays at one however fast requests
arrive, and the committed frame is always the one for the latest request.

All methods must be called on the event loop thread that runs the tasks.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Set

from ..models.raster import Frame
from ..models.render_request import RenderRequest
from .document_session import (
    CancelToken,
    DocumentError,
    DocumentSession,
    PageBoundsError,
    RenderCancelled,
)

logger = logging.getLogger(__name__)


class TaskOutcome(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RenderTask:
    """One in-flight execution of a RenderRequest.

    The outcome leaves PENDING exactly once. Cancelling marks the task
    CANCELLED immediately, so a result reported afterwards is ignored.
    """

    def __init__(self, request: RenderRequest, generation: int) -> None:
        self.request = request
        self.generation = generation
        self.token = CancelToken()
        self.outcome = TaskOutcome.PENDING
        self.frame: Optional[Frame] = None
        self.error: Optional[DocumentError] = None
        self.future: Optional[asyncio.Task] = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not TaskOutcome.PENDING

    def cancel(self) -> bool:
        if self.is_terminal:
            return False
        self.outcome = TaskOutcome.CANCELLED
        self.token.cancel()
        if self.future is not None:
            self.future.cancel()
        return True

    def _finish(self, outcome: TaskOutcome, frame: Optional[Frame] = None,
                error: Optional[DocumentError] = None) -> bool:
        if self.is_terminal:
            return False
        self.outcome = outcome
        self.frame = frame
        self.error = error
        return True

    def __repr__(self) -> str:
        return f"RenderTask(#{self.generation} {self.request.describe()} {self.outcome.value})"


class RenderTaskController:
    """Keeps at most one render task running and commits only the latest.

    Args:
        session: Document session the tasks render from
        strategy: View strategy producing frames (single or continuous)
        on_started: Called with the request when a new task starts
        on_commit: Called with the frame when the latest task succeeds
        on_failure: Called with (request, error) when the latest task fails
    """

    def __init__(
        self,
        session: DocumentSession,
        strategy,
        on_started: Optional[Callable[[RenderRequest], None]] = None,
        on_commit: Optional[Callable[[Frame], None]] = None,
        on_failure: Optional[Callable[[RenderRequest, DocumentError], None]] = None,
    ) -> None:
        self.session = session
        self.strategy = strategy
        self._on_started = on_started
        self._on_commit = on_commit
        self._on_failure = on_failure
        self._generation = 0
        self._active: Optional[RenderTask] = None
        self._current: Optional[RenderRequest] = None
        self._committed: Optional[Frame] = None
        self._outstanding: Set[asyncio.Task] = set()

    @property
    def current_request(self) -> Optional[RenderRequest]:
        return self._current

    @property
    def committed(self) -> Optional[Frame]:
        return self._committed

    @property
    def active_task(self) -> Optional[RenderTask]:
        return self._active

    def active_tasks(self) -> List[RenderTask]:
        """Non-terminal tasks (never more than one)."""
        if self._active is not None and not self._active.is_terminal:
            return [self._active]
        return []

    def submit(self, request: RenderRequest) -> RenderTask:
        """Make request current, cancelling the task running for the previous one.

        Raises:
            PageBoundsError: If the page is outside the open document; no task
                is created and the current request is unchanged
        """
        page_count = self.session.page_count
        if request.page_index < 1 or request.page_index > page_count:
            raise PageBoundsError(request.page_index, page_count)

        self._generation += 1
        previous = self._active
        if previous is not None and previous.cancel():
            logger.debug(f"Cancelled {previous} for {request.describe()}")

        self._current = request
        task = RenderTask(request, self._generation)
        self._active = task
        if self._on_started:
            self._on_started(request)

        loop = asyncio.get_running_loop()
        future = loop.create_task(self._run(task))
        task.future = future
        self._outstanding.add(future)
        future.add_done_callback(self._outstanding.discard)
        logger.debug(f"Started {task}")
        return task

    def cancel(self) -> None:
        """Cancel the running task without starting another."""
        self._generation += 1
        self._current = None
        if self._active is not None and self._active.cancel():
            logger.debug(f"Cancelled {self._active}")

    def reset(self) -> None:
        """Cancel rendering and forget the committed frame (new document)."""
        self.cancel()
        self._active = None
        self._committed = None
        self.strategy.reset()

    async def wait_idle(self) -> None:
        """Wait until the task for the latest request has finished."""
        while True:
            task = self._active
            if task is None or task.future is None or task.future.done():
                return
            await asyncio.wait({task.future})

    async def aclose(self) -> None:
        """Cancel rendering and wait for every outstanding task to unwind."""
        self.cancel()
        if self._outstanding:
            await asyncio.gather(*list(self._outstanding), return_exceptions=True)

    def _is_current(self, task: RenderTask) -> bool:
        return task.generation == self._generation

    async def _run(self, task: RenderTask) -> None:
        try:
            frame = await self.strategy.render(self.session, task.request, task.token)
        except RenderCancelled:
            task._finish(TaskOutcome.CANCELLED)
            logger.debug(f"{task} acknowledged cancellation")
            return
        except asyncio.CancelledError:
            task._finish(TaskOutcome.CANCELLED)
            logger.debug(f"{task} acknowledged cancellation")
            raise
        except DocumentError as e:
            if not task._finish(TaskOutcome.FAILED, error=e) or not self._is_current(task):
                logger.debug(f"Discarded failure of stale {task}: {e}")
                return
            logger.error(f"Render failed for {task.request.describe()}: {e}")
            if self._on_failure:
                self._on_failure(task.request, e)
            return

        if not self._is_current(task):
            task._finish(TaskOutcome.CANCELLED)
            logger.debug(f"Discarded result of stale {task}")
            return
        if not task._finish(TaskOutcome.SUCCEEDED, frame=frame):
            logger.debug(f"Discarded result of cancelled {task}")
            return
        self._committed = frame
        logger.debug(f"Committed {task}")
        if self._on_commit:
            self._on_commit(frame)
