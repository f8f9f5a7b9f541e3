"""
Exceptions raised by the export pipeline.

Startup errors (``PathNotFound``, ``UnwatchablePath``) are fatal and handled
by the CLI. ``DocumentError`` subclasses are raised inside an export and
converted to a failed ``ExportOutcome`` by the worker.
"""

from pathlib import Path
from typing import Optional

from psd_export.models.schemas import FailureReason


class ExportPipelineError(Exception):
    """Base class for all pipeline errors."""


class PathNotFound(ExportPipelineError):
    """The path given on startup does not exist."""

    def __init__(self, path: Path):
        super().__init__(f"Path does not exist: {path}")
        self.path = path


class UnwatchablePath(ExportPipelineError):
    """The path exists but cannot be watched."""

    def __init__(self, path: Path, detail: str):
        super().__init__(f"Cannot watch {path}: {detail}")
        self.path = path
        self.detail = detail


class DocumentError(ExportPipelineError):
    """A per-document failure during export."""

    reason: FailureReason

    def __init__(self, detail: str, path: Optional[Path] = None):
        super().__init__(detail)
        self.detail = detail
        self.path = path


class UnreadableDocument(DocumentError):
    reason = FailureReason.UNREADABLE_DOCUMENT


class DecodeError(DocumentError):
    """The decoder rejected the document bytes."""

    reason = FailureReason.UNPARSEABLE_DOCUMENT


class ImageBufferError(DocumentError):
    """Pixel data does not match the reported dimensions."""

    reason = FailureReason.IMAGE_BUFFER_CONSTRUCTION_FAILURE


class EncodeError(DocumentError):
    reason = FailureReason.UNENCODABLE_IMAGE


class UnwritableOutput(DocumentError):
    reason = FailureReason.UNWRITABLE_OUTPUT


class WatchStreamError(ExportPipelineError):
    """An error reported by the notification stream; never fatal."""


# Aliases matching the failure taxonomy
UnparseableDocument = DecodeError
ImageBufferConstructionFailure = ImageBufferError
