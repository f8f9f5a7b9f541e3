"""
Dispatch loop for the live watch mode.

Consumes filesystem notifications from a queue fed by the watcher, filters
them through the classifier and the debounce ledger, and submits one export
per accepted event to a worker pool. The loop never waits for exports; a
done-callback drains completions for logging and counters.
"""

import queue
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from loguru import logger

from domains.export_pipeline.classifier import EventKind, PathClassifier
from domains.export_pipeline.errors import WatchStreamError
from domains.export_pipeline.ledger import DEFAULT_DEBOUNCE_INTERVAL, DebounceLedger
from domains.export_pipeline.worker import ExportWorker
from psd_export.models.schemas import ExportOutcome, ExportRequest, OutputFormat
from psd_export.utils.helpers import normalise_path


@dataclass(frozen=True)
class FileNotification:
    """One raw filesystem notification."""

    kind: EventKind
    paths: Tuple[Path, ...]


class _StreamClosed:
    def __repr__(self) -> str:
        return "STREAM_CLOSED"


# Put on the queue by the watcher when the notification stream ends.
STREAM_CLOSED = _StreamClosed()


class LoopState(str, Enum):
    WATCHING = "watching"
    STOPPED = "stopped"


class DispatchLoop:
    """Turns notifications into debounced, fire-and-forget exports."""

    def __init__(
        self,
        notifications: "queue.Queue",
        worker: ExportWorker,
        output_format: OutputFormat,
        classifier: Optional[PathClassifier] = None,
        ledger: Optional[DebounceLedger] = None,
        debounce_interval: float = DEFAULT_DEBOUNCE_INTERVAL,
        executor: Optional[Executor] = None,
        max_workers: int = 8,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize dispatch loop.

        Args:
            notifications: Queue of FileNotification, WatchStreamError or
                STREAM_CLOSED items
            worker: Export worker shared by all dispatches
            output_format: Target format for every export
            classifier: Path classifier (defaults to ``.psd`` documents)
            ledger: Debounce ledger (a fresh one by default)
            debounce_interval: Minimum seconds between exports of one document
            executor: Pool to run exports on; created when omitted
            max_workers: Size of the pool created when ``executor`` is None
            clock: Monotonic time source
        """
        self.notifications = notifications
        self.worker = worker
        self.output_format = output_format
        self.classifier = classifier or PathClassifier()
        self.ledger = ledger if ledger is not None else DebounceLedger()
        self.debounce_interval = debounce_interval
        self.clock = clock

        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="psd-export"
        )

        self.state = LoopState.WATCHING
        self._thread: Optional[threading.Thread] = None
        self._stats_lock = threading.Lock()
        self.succeeded = 0
        self.failed = 0

    # Event handling ------------------------------------------------------------------

    def handle(self, notification: FileNotification) -> List[Path]:
        """
        Process one notification.

        Returns:
            Paths for which an export was dispatched
        """
        dispatched: List[Path] = []

        for raw_path in notification.paths:
            path = Path(raw_path)

            if not self.classifier.accept(path, notification.kind):
                continue

            key = normalise_path(path)
            if not self.ledger.should_dispatch(key, self.clock(), self.debounce_interval):
                logger.debug(f"{path} within debounce window, ignoring event")
                continue

            logger.info(f"Detected {notification.kind.value} document: {path}")
            self.dispatch(path)
            dispatched.append(path)

        return dispatched

    def dispatch(self, path: Path) -> Future:
        """Submit an export for ``path`` without waiting for it."""
        request = ExportRequest(path=path, output_format=self.output_format)
        future = self.executor.submit(self.worker.execute, request, True)
        future.add_done_callback(self._on_complete)
        return future

    def _on_complete(self, future: Future) -> None:
        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            logger.error(f"Export task crashed: {error}")
            with self._stats_lock:
                self.failed += 1
            return

        outcome: ExportOutcome = future.result()
        with self._stats_lock:
            if outcome.success:
                self.succeeded += 1
            else:
                self.failed += 1
        logger.debug(
            f"Export of {outcome.path} finished in {outcome.duration_ms:.0f} ms "
            f"(ok={self.succeeded}, failed={self.failed})"
        )

    # Loop --------------------------------------------------------------------------------

    def run(self) -> None:
        """Consume notifications until the stream closes."""
        logger.info(f"Dispatching {self.output_format.value} exports, "
                    f"debounce {self.debounce_interval * 1000:.0f} ms")

        while True:
            item = self.notifications.get()

            if item is STREAM_CLOSED:
                break

            if isinstance(item, WatchStreamError):
                logger.error(f"Watch event error: {item}")
                continue

            try:
                self.handle(item)
            except OSError as e:
                logger.error(f"Failed to handle {item}: {e}")

        self.state = LoopState.STOPPED
        logger.warning("Notification stream closed, dispatch loop stopped")

    def start(self) -> threading.Thread:
        """Run the loop on a daemon thread."""
        self._thread = threading.Thread(target=self.run, name="psd-dispatch", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def shutdown(self, wait: bool = False) -> None:
        """Release the worker pool; in-flight exports are not cancelled."""
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
