#!/usr/bin/env python3
"""Watch PSD documents and export them to PNG or JPEG as they are saved.

The path may be a directory (watched recursively) or a single ``.psd``
file. With ``--once`` the existing documents are exported a single time and
the process exits instead of watching.
"""

from __future__ import annotations

import argparse
import queue
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from domains.export_pipeline.batch import BatchRunner
from domains.export_pipeline.classifier import PathClassifier
from domains.export_pipeline.dispatch import DispatchLoop
from domains.export_pipeline.errors import ExportPipelineError
from domains.export_pipeline.ledger import DebounceLedger
from domains.export_pipeline.watcher import DocumentWatcher
from domains.export_pipeline.worker import ExportWorker
from psd_export.models.schemas import OutputFormat
from psd_export.utils.config import Settings, get_settings
from psd_export.utils.helpers import normalise_path

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str) -> None:
    """Send loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level.upper())


def parse_args(argv: Optional[list[str]] = None, settings: Optional[Settings] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    settings = settings or get_settings()

    parser = argparse.ArgumentParser(
        prog="psd-export",
        description=(
            "Watch a directory (recursively) or a single PSD file and export "
            "documents to PNG/JPG whenever they are saved."
        ),
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Directory to watch recursively, or a single .psd file.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=[fmt.value for fmt in OutputFormat],
        default=settings.default_format,
        help="Output image format (default: %(default)s).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Export existing documents once and exit instead of watching.",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=settings.debounce_interval,
        help="Minimum seconds between exports of the same document (default: %(default)s).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.max_workers,
        help="Maximum concurrent exports (default: %(default)s).",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level (default: %(default)s).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="With --once, exit with status 1 if any document failed to export.",
    )

    return parser.parse_args(argv)


def validate_target(path: Path, classifier: PathClassifier) -> bool:
    """Log and return False unless ``path`` is a directory or a source document."""

    if not path.exists():
        logger.error(f"Path does not exist: {path}")
        return False
    if path.is_dir():
        return True
    if path.is_file():
        if classifier.is_document(path):
            return True
        logger.error(f"Path is a file but not a {classifier.suffix} document: {path}")
        return False
    logger.error(f"Path is neither a file nor a directory: {path}")
    return False


def run_once(args: argparse.Namespace, worker: ExportWorker, classifier: PathClassifier) -> int:
    logger.info("Running in one-shot mode, exporting existing documents...")
    runner = BatchRunner(worker, classifier=classifier, max_workers=args.workers)
    summary = runner.run_once(args.path, args.format)

    if args.strict and summary.failed:
        return 1
    return 0


def run_watch(
    args: argparse.Namespace,
    worker: ExportWorker,
    classifier: PathClassifier,
) -> int:
    notifications: queue.Queue = queue.Queue()
    watcher = DocumentWatcher(args.path, notifications)

    try:
        watcher.start()
    except ExportPipelineError as e:
        logger.error(str(e))
        return 1

    loop = DispatchLoop(
        notifications,
        worker=worker,
        output_format=args.format,
        classifier=classifier,
        ledger=DebounceLedger(),
        debounce_interval=args.debounce,
        max_workers=args.workers,
    )
    loop.start()
    logger.info(f"Watcher started. Waiting for {classifier.suffix} files to be created or modified...")

    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        while not stop_event.is_set():
            stop_event.wait(1.0)
    finally:
        watcher.stop()
        loop.join(timeout=5)
        loop.shutdown(wait=False)

    logger.info(f"Watcher stopped ({loop.succeeded} exported, {loop.failed} failed).")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    settings = get_settings()
    args = parse_args(argv, settings)
    configure_logging(args.log_level)

    args.path = normalise_path(args.path)
    args.format = OutputFormat(args.format)
    classifier = PathClassifier(settings.source_extension)

    if not validate_target(args.path, classifier):
        return 1

    worker = ExportWorker(
        settle_delay=settings.settle_delay,
        stability_interval=settings.stability_interval,
        stability_timeout=settings.stability_timeout,
    )

    logger.info(f"Export format: {args.format.value}")

    if args.once:
        return run_once(args, worker, classifier)

    logger.info(f"Debounce interval: {args.debounce * 1000:.0f} ms")
    return run_watch(args, worker, classifier)


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
