"""
Batch processing of many logs on a worker pool.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..config.settings import ParserSettings
from .pipeline import ProcessedLog, process_log

logger = logging.getLogger(__name__)

# Loads the bytes of a log from its identity, e.g. a file path
LogLoader = Callable[[str], bytes]


@dataclass(frozen=True)
class PipelineFailure:
    """A log whose pipeline run failed fatally."""

    file_identity: str
    reason: str


@dataclass
class BatchResult:
    """Outcome of a batch run."""

    processed: Dict[str, ProcessedLog] = field(default_factory=dict)
    failures: List[PipelineFailure] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.failures) + len(self.cancelled)


class BatchProcessor:
    """
    Runs one independent pipeline per log across worker threads.

    Cancellation is cooperative: the cancel event is checked before each
    log starts, a log that is already being processed runs to completion.
    A failing log is recorded and never stops the rest of the batch.
    """

    def __init__(self, settings: Optional[ParserSettings] = None, max_workers: Optional[int] = None):
        """
        Initialize the batch processor.

        Args:
            settings: Settings passed to every pipeline run
            max_workers: Maximum number of worker threads (defaults to settings, then CPU count)
        """
        self.settings = settings or ParserSettings()
        self.max_workers = max_workers or self.settings.max_workers or os.cpu_count() or 1
        self.cancel_event = threading.Event()

    def cancel(self) -> None:
        """Stop starting new logs."""
        self.cancel_event.set()

    def process(
        self,
        identities: Sequence[str],
        loader: LogLoader,
        progress_callback: Optional[Callable[[str, bool], None]] = None,
    ) -> BatchResult:
        """
        Process a batch of logs.

        Args:
            identities: Log identities in submission order
            loader: Reads the bytes of one log
            progress_callback: Called with (identity, succeeded) after each finished log

        Returns:
            BatchResult with processed logs, failures and cancelled identities
        """
        result = BatchResult()
        logger.info(f"Processing {len(identities)} logs with {self.max_workers} workers")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_identity = {
                executor.submit(self._process_one, identity, loader): identity for identity in identities
            }

            try:
                for future in as_completed(future_to_identity):
                    identity = future_to_identity[future]
                    try:
                        processed = future.result()
                    except Exception as e:
                        logger.error(f"Error processing {identity}: {e}")
                        result.failures.append(PipelineFailure(identity, str(e) or type(e).__name__))
                        if progress_callback:
                            progress_callback(identity, False)
                        continue

                    if processed is None:
                        result.cancelled.append(identity)
                        continue

                    result.processed[identity] = processed
                    if progress_callback:
                        progress_callback(identity, True)
            except BaseException:
                # Interrupted (e.g. Ctrl-C): queued logs never start, running ones finish
                logger.warning("Batch interrupted, cancelling queued logs")
                self.cancel()
                executor.shutdown(wait=False, cancel_futures=True)
                raise

        logger.info(
            f"Batch finished: {len(result.processed)} processed, {len(result.failures)} failed, "
            f"{len(result.cancelled)} cancelled"
        )
        return result

    def _process_one(self, identity: str, loader: LogLoader) -> Optional[ProcessedLog]:
        """Process a single log, None if the batch was cancelled before it started."""
        if self.cancel_event.is_set():
            logger.debug(f"Skipping {identity}, batch cancelled")
            return None
        return process_log(loader(identity), self.settings)
