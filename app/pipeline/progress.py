"""
Progress + cooperative cancellation for a running enrichment.

The pipeline calls checkpoint() after every unit of work. The cancel handle is
anything with an is_cancelled() method: a CancellationToken in-process, or the
Redis-backed EnrichmentRun when running as a background job.
"""
import logging
import threading
from typing import Callable, Optional

from app.pipeline.base import BatchResult

logger = logging.getLogger('pipeline.progress')


class CancellationToken:
    """In-process cancel flag (scripts, tests)."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


class ProgressBridge:
    """Publishes BatchResult snapshots and answers "should we stop?"."""

    def __init__(self, result: BatchResult,
                 on_progress: Optional[Callable[[BatchResult], None]] = None,
                 cancel=None):
        self.result = result
        self.on_progress = on_progress
        self.cancel = cancel
        self.checkpoints = 0
        self._cancelled = False

    def checkpoint(self) -> BatchResult:
        """Publish the current counters. A failing callback never stops the run."""
        self.checkpoints += 1
        snapshot = self.result.snapshot()
        if self.on_progress is not None:
            try:
                self.on_progress(snapshot)
            except Exception:
                logger.error("Progress callback failed", exc_info=True)
        return snapshot

    @property
    def cancelled(self) -> bool:
        """Sticky once observed; a cancel check that errors is treated as not cancelled."""
        if self._cancelled or self.cancel is None:
            return self._cancelled
        try:
            self._cancelled = bool(self.cancel.is_cancelled())
        except Exception:
            logger.warning("Cancellation check failed", exc_info=True)
        return self._cancelled
