"""
Client-side pending task queue.

The queue shows a locally reordered list immediately and commits it to
the server afterwards. If the commit fails the server's list replaces
the local one, so the screen never keeps an order the server rejected.
"""

import threading
from typing import Callable, Optional
import structlog

from config import settings
from models.production_task import TaskStatus, ProductionTaskResponse
from integrations.production_client import ProductionApiClient
from exceptions import AppError, TransportError, AuthenticationError

logger = structlog.get_logger(__name__)


class TaskQueue:
    """Authoritative list of pending tasks plus optimistic reordering."""

    def __init__(self, client: ProductionApiClient):
        self.client = client
        self._lock = threading.Lock()
        self._tasks: list[ProductionTaskResponse] = []

    @property
    def tasks(self) -> list[ProductionTaskResponse]:
        with self._lock:
            return list(self._tasks)

    @property
    def task_ids(self) -> list[str]:
        return [task.id for task in self.tasks]

    def load(self) -> list[ProductionTaskResponse]:
        """Replace the local list with the server's pending queue."""
        tasks = self.client.list_tasks(status=TaskStatus.PENDING)
        with self._lock:
            self._tasks = list(tasks)
        logger.debug("task_queue_loaded", count=len(tasks))
        return self.tasks

    def reorder(self, task_ids: list[str]) -> list[ProductionTaskResponse]:
        """
        Apply an order locally, then commit it.

        Raises:
            The commit error, after the local list was reloaded from the server
        """
        with self._lock:
            by_id = {task.id: task for task in self._tasks}
            previous = list(self._tasks)
            self._tasks = [by_id[task_id] for task_id in task_ids if task_id in by_id]

        try:
            committed = self.client.reorder(task_ids)
        except AppError as e:
            logger.warning("task_queue_reorder_failed", code=e.code, count=len(task_ids))
            if isinstance(e, AuthenticationError):
                with self._lock:
                    self._tasks = previous
                raise
            try:
                self.load()
            except AppError as reload_error:
                logger.error("task_queue_reload_failed", code=reload_error.code)
                with self._lock:
                    self._tasks = previous
            raise

        with self._lock:
            self._tasks = list(committed)
        logger.info("task_queue_reordered", count=len(committed))
        return self.tasks

    def move(self, task_id: str, new_index: int) -> list[ProductionTaskResponse]:
        """Move one task to a position and commit the resulting order."""
        ids = self.task_ids
        if task_id not in ids:
            raise KeyError(task_id)
        ids.remove(task_id)
        new_index = max(0, min(new_index, len(ids)))
        ids.insert(new_index, task_id)
        return self.reorder(ids)


class QueuePoller:
    """
    Background refresh of a TaskQueue.

    Transport errors are logged and polling continues; an
    authentication error stops the poller.
    """

    def __init__(
        self,
        queue: TaskQueue,
        interval: Optional[float] = None,
        on_refresh: Optional[Callable[[list[ProductionTaskResponse]], None]] = None,
    ):
        self.queue = queue
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.on_refresh = on_refresh
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def refresh_once(self) -> bool:
        """
        One polling cycle.

        Returns:
            False when polling must stop
        """
        try:
            tasks = self.queue.load()
        except AuthenticationError as e:
            logger.warning("queue_poller_stopped", code=e.code)
            return False
        except TransportError as e:
            logger.warning("queue_poll_failed", error=e.message)
            return True
        if self.on_refresh is not None:
            self.on_refresh(tasks)
        return True

    def _run(self) -> None:
        while not self._stop.is_set():
            if not self.refresh_once():
                self._stop.set()
                break
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="queue-poller", daemon=True)
        self._thread.start()
        logger.info("queue_poller_started", interval=self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("queue_poller_stopping")
