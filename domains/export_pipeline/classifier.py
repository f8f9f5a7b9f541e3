"""Decide which filesystem notifications should trigger an export."""

from enum import Enum
from pathlib import Path

from psd_export.utils.helpers import has_suffix


class EventKind(str, Enum):
    """Kinds of filesystem notification the watcher produces."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"
    OTHER = "other"


TRIGGER_KINDS = frozenset({EventKind.CREATED, EventKind.MODIFIED})


class PathClassifier:
    """
    Pure predicate over (path, event kind).

    Results reflect the filesystem at call time and must not be cached.
    """

    def __init__(self, source_extension: str = "psd"):
        self.suffix = "." + source_extension.lstrip(".")

    def is_document(self, path: Path) -> bool:
        """True if ``path`` is an existing regular file with the source suffix."""
        path = Path(path)
        # is_file() follows symlinks and rejects directories
        return has_suffix(path, self.suffix) and path.is_file()

    def accept(self, path: Path, kind: EventKind) -> bool:
        """
        Check whether an event should trigger export.

        Args:
            path: Path carried by the notification
            kind: Event kind

        Returns:
            True for created/modified events on an existing document
        """
        if kind not in TRIGGER_KINDS:
            return False
        return self.is_document(path)
