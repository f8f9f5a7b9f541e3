"""
Pydantic models for the PSD export pipeline.

Shared data models passed between the dispatch loop, the batch runner and
the export workers.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =====================================================
# Output Formats
# =====================================================

class OutputFormat(str, Enum):
    """Supported export targets."""

    PNG = "png"
    JPG = "jpg"

    @property
    def extension(self) -> str:
        """File extension written next to the source document."""
        return self.value

    @property
    def encoder_id(self) -> str:
        """Pillow encoder identifier."""
        return _ENCODER_IDS[self]


_ENCODER_IDS = {
    OutputFormat.PNG: "PNG",
    OutputFormat.JPG: "JPEG",
}


# =====================================================
# Export Models
# =====================================================

class FailureReason(str, Enum):
    """Classified reason for a failed export."""

    UNREADABLE_DOCUMENT = "unreadable_document"
    UNPARSEABLE_DOCUMENT = "unparseable_document"
    IMAGE_BUFFER_CONSTRUCTION_FAILURE = "image_buffer_construction_failure"
    UNENCODABLE_IMAGE = "unencodable_image"
    UNWRITABLE_OUTPUT = "unwritable_output"


class ExportRequest(BaseModel):
    """A single document to export in a given format."""

    model_config = ConfigDict(frozen=True)

    path: Path
    output_format: OutputFormat


class ExportOutcome(BaseModel):
    """Result of one export attempt."""

    model_config = ConfigDict(frozen=True)

    path: Path
    output_format: OutputFormat
    success: bool
    output_path: Optional[Path] = None
    reason: Optional[FailureReason] = None
    detail: Optional[str] = None
    duration_ms: float = 0.0

    @classmethod
    def succeeded(
        cls,
        path: Path,
        output_format: OutputFormat,
        output_path: Path,
        duration_ms: float = 0.0,
    ) -> "ExportOutcome":
        return cls(
            path=path,
            output_format=output_format,
            success=True,
            output_path=output_path,
            duration_ms=duration_ms,
        )

    @classmethod
    def failed(
        cls,
        path: Path,
        output_format: OutputFormat,
        reason: FailureReason,
        detail: str,
        duration_ms: float = 0.0,
    ) -> "ExportOutcome":
        return cls(
            path=path,
            output_format=output_format,
            success=False,
            reason=reason,
            detail=detail,
            duration_ms=duration_ms,
        )


class BatchSummary(BaseModel):
    """Aggregate result of a one-shot export run."""

    root: Path
    output_format: OutputFormat
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: List[ExportOutcome] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no documents were found under ``root``."""
        return self.total == 0
