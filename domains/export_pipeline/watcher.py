"""
Filesystem watcher feeding the dispatch loop.

Wraps a watchdog ``Observer`` and translates its events into
``FileNotification`` items on a queue. A directory is watched recursively; a
single file is watched through its parent directory, forwarding only events
that touch that file.
"""

import queue
from pathlib import Path
from typing import Optional, Tuple

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from domains.export_pipeline.classifier import EventKind
from domains.export_pipeline.dispatch import STREAM_CLOSED, FileNotification
from domains.export_pipeline.errors import PathNotFound, UnwatchablePath, WatchStreamError
from psd_export.utils.helpers import normalise_path

EVENT_KINDS = {
    "created": EventKind.CREATED,
    "modified": EventKind.MODIFIED,
    # Editors commonly save by writing a temp file and renaming it over the target
    "moved": EventKind.MODIFIED,
    "deleted": EventKind.REMOVED,
}


def to_notification(event: FileSystemEvent) -> FileNotification:
    """Translate a watchdog event into a FileNotification."""

    kind = EVENT_KINDS.get(event.event_type, EventKind.OTHER)
    paths = [event.src_path]
    dest = getattr(event, "dest_path", None)
    if dest:
        paths.append(dest)
    return FileNotification(kind=kind, paths=tuple(Path(_as_str(p)) for p in paths))


def _as_str(path) -> str:
    return path.decode() if isinstance(path, bytes) else str(path)


class NotificationHandler(FileSystemEventHandler):
    """Watchdog handler that forwards every event to a queue."""

    def __init__(self, notifications: "queue.Queue", only: Optional[Path] = None):
        """
        Initialize handler.

        Args:
            notifications: Queue consumed by the dispatch loop
            only: When set, drop events that do not involve this path
        """
        super().__init__()
        self.notifications = notifications
        self.only = only

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            notification = to_notification(event)
            if self.only is not None:
                paths = tuple(p for p in notification.paths if normalise_path(p) == self.only)
                if not paths:
                    return
                notification = FileNotification(kind=notification.kind, paths=paths)
        except Exception as e:
            self.notifications.put(WatchStreamError(f"Cannot translate {event!r}: {e}"))
            return

        self.notifications.put(notification)


class DocumentWatcher:
    """File system monitoring for a single document or a directory tree."""

    def __init__(self, target: Path, notifications: "queue.Queue"):
        self.target = normalise_path(target)
        self.notifications = notifications
        self.observer: Optional[Observer] = None

    def _watch_spec(self) -> Tuple[Path, bool, Optional[Path]]:
        """Return (directory to schedule, recursive, single-file filter)."""
        if not self.target.exists():
            raise PathNotFound(self.target)
        if self.target.is_dir():
            return self.target, True, None
        if self.target.is_file():
            return self.target.parent, False, self.target
        raise UnwatchablePath(self.target, "neither a regular file nor a directory")

    def start(self) -> None:
        """
        Establish the watch.

        Raises:
            PathNotFound: If the target does not exist
            UnwatchablePath: If the target cannot be watched
        """
        directory, recursive, only = self._watch_spec()
        handler = NotificationHandler(self.notifications, only=only)

        observer = Observer()
        try:
            observer.schedule(handler, str(directory), recursive=recursive)
            observer.daemon = True
            observer.start()
        except OSError as e:
            raise UnwatchablePath(self.target, str(e)) from e

        self.observer = observer
        if only is None:
            logger.info(f"Watching directory recursively: {self.target}")
        else:
            logger.info(f"Watching single file: {self.target}")

    def stop(self) -> None:
        """Stop the observer and close the notification stream."""
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None
            logger.info("File system observer stopped")
        self.notifications.put(STREAM_CLOSED)
