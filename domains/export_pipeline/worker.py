"""
Export worker: read, decode, encode and write one document.

Each call is independent and touches no shared state, so any number of
exports (including several for the same document) may run concurrently.
Failures are logged and returned as classified outcomes, never raised.
"""

import time
from pathlib import Path
from typing import Callable

from loguru import logger

from domains.export_pipeline import codec
from domains.export_pipeline.errors import (
    DecodeError,
    DocumentError,
    EncodeError,
    UnreadableDocument,
    UnwritableOutput,
)
from psd_export.models.schemas import ExportOutcome, ExportRequest, OutputFormat
from psd_export.utils.helpers import format_bytes, output_path_for

Decoder = Callable[[bytes], codec.DecodedImage]
Encoder = Callable[[int, int, bytes, OutputFormat], bytes]


def wait_until_stable(path: Path, interval: float, timeout: float) -> bool:
    """
    Wait until ``path`` stops changing size and mtime.

    Args:
        path: File being written by another process
        interval: Seconds between the two samples
        timeout: Give up after this many seconds

    Returns:
        True if two consecutive samples matched, False on timeout or if the
        file vanished (the subsequent read reports the real error)
    """
    deadline = time.monotonic() + timeout
    try:
        stat = path.stat()
        previous = (stat.st_size, stat.st_mtime_ns)
        while True:
            time.sleep(interval)
            stat = path.stat()
            current = (stat.st_size, stat.st_mtime_ns)
            if current == previous:
                return True
            if time.monotonic() >= deadline:
                return False
            previous = current
    except OSError:
        return False


class ExportWorker:
    """Converts a single document to the configured output format."""

    def __init__(
        self,
        decoder: Decoder = codec.decode,
        encoder: Encoder = codec.encode,
        settle_delay: float = 0.01,
        stability_interval: float = 0.05,
        stability_timeout: float = 2.0,
    ):
        """
        Initialize export worker.

        Args:
            decoder: Document bytes -> DecodedImage
            encoder: (width, height, pixels, format) -> encoded bytes
            settle_delay: Grace delay before reading in the live watch path
            stability_interval: Sampling interval for the size/mtime check,
                0 disables the check
            stability_timeout: Upper bound on the stability wait
        """
        self.decoder = decoder
        self.encoder = encoder
        self.settle_delay = settle_delay
        self.stability_interval = stability_interval
        self.stability_timeout = stability_timeout

    def execute(self, request: ExportRequest, settle: bool = False) -> ExportOutcome:
        """Run an ``ExportRequest``."""
        return self.run(request.path, request.output_format, settle=settle)

    def run(self, path: Path, output_format: OutputFormat, settle: bool = False) -> ExportOutcome:
        """
        Export ``path`` next to itself in ``output_format``.

        Args:
            path: Source document
            output_format: Target format
            settle: Wait for a writer to finish before reading

        Returns:
            ExportOutcome describing success or the classified failure
        """
        started = time.perf_counter()
        path = Path(path)

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000

        try:
            if settle:
                self._settle(path)
            output_path = self._export(path, output_format)
        except DocumentError as e:
            logger.error(f"Export failed for {path}: [{e.reason.value}] {e.detail}")
            return ExportOutcome.failed(path, output_format, e.reason, e.detail, elapsed_ms())

        logger.success(f"Exported {path} -> {output_path}")
        return ExportOutcome.succeeded(path, output_format, output_path, elapsed_ms())

    def _settle(self, path: Path) -> None:
        if self.settle_delay > 0:
            time.sleep(self.settle_delay)
        if self.stability_interval > 0:
            if not wait_until_stable(path, self.stability_interval, self.stability_timeout):
                logger.warning(f"{path} still changing or missing, exporting anyway")

    def _export(self, path: Path, output_format: OutputFormat) -> Path:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise UnreadableDocument(f"Cannot read document: {e}", path) from e

        logger.debug(f"Read {format_bytes(len(data))} from {path}")

        try:
            image = self.decoder(data)
        except DocumentError:
            raise
        except Exception as e:
            raise DecodeError(f"Decoder failed: {e}", path) from e

        try:
            encoded = self.encoder(image.width, image.height, image.pixels, output_format)
        except DocumentError:
            raise
        except Exception as e:
            raise EncodeError(f"Encoder failed: {e}", path) from e

        output_path = output_path_for(path, output_format)
        try:
            output_path.write_bytes(encoded)
        except OSError as e:
            raise UnwritableOutput(f"Cannot write {output_path}: {e}", path) from e

        return output_path
