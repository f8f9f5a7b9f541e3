"""One-shot export of every document under a path."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from loguru import logger

from domains.export_pipeline.classifier import PathClassifier
from domains.export_pipeline.worker import ExportWorker
from psd_export.models.schemas import BatchSummary, ExportOutcome, OutputFormat
from psd_export.utils.helpers import find_documents, normalise_path


class BatchRunner:
    """Exports existing documents concurrently and waits for all of them."""

    def __init__(
        self,
        worker: ExportWorker,
        classifier: Optional[PathClassifier] = None,
        max_workers: int = 8,
    ):
        self.worker = worker
        self.classifier = classifier or PathClassifier()
        self.max_workers = max_workers

    def run_once(self, root: Path, output_format: OutputFormat) -> BatchSummary:
        """
        Export every document under ``root``.

        Args:
            root: A single document or a directory scanned recursively
            output_format: Target format

        Returns:
            BatchSummary with success and failure counts
        """
        root = normalise_path(root)
        documents = find_documents(root, self.classifier.suffix)
        logger.info(f"Found {len(documents)} {self.classifier.suffix} file(s) under {root}")

        if not documents:
            logger.info("No documents found to export.")
            return BatchSummary(root=root, output_format=output_format)

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(documents)),
            thread_name_prefix="psd-batch",
        ) as executor:
            outcomes: List[ExportOutcome] = list(
                executor.map(lambda p: self.worker.run(p, output_format), documents)
            )

        succeeded = sum(1 for outcome in outcomes if outcome.success)
        summary = BatchSummary(
            root=root,
            output_format=output_format,
            total=len(outcomes),
            succeeded=succeeded,
            failed=len(outcomes) - succeeded,
            outcomes=outcomes,
        )

        if summary.failed:
            logger.warning(
                f"One-shot export finished: {summary.succeeded} succeeded, {summary.failed} failed"
            )
        else:
            logger.success(f"One-shot export finished: {summary.succeeded} succeeded")
        return summary
