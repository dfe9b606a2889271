"""
Background scheduler for periodic imports.

Runs the same ObservationImporter the HTTP handler uses, on a fixed
interval, in a daemon thread. A failed run is logged and counted by the
importer; the loop keeps going.
"""

import logging
import threading
from typing import Optional

from obsimport.config import config
from obsimport.ingestion.pipeline import ObservationImporter

logger = logging.getLogger(__name__)


class ImportScheduler:
    """Periodically triggers an importer from a background thread."""

    def __init__(
        self,
        importer: ObservationImporter,
        interval_seconds: Optional[float] = None,
    ):
        self.importer = importer
        if interval_seconds is None:
            interval_seconds = config.imports.interval_minutes * 60
        self.interval_seconds = interval_seconds

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def run_continuous(self) -> None:
        """
        Run imports until stop() is called.

        This method blocks - use start_background() for non-blocking.
        """
        logger.info(f'Starting scheduled imports (interval={self.interval_seconds:.0f}s)')

        while not self._stop_event.is_set():
            try:
                self.importer.run()
            except Exception as e:
                # Unexpected errors must not kill the scheduler thread
                logger.exception(f'Scheduled import crashed: {e}')
            self._stop_event.wait(self.interval_seconds)

        logger.info('Scheduled imports stopped')

    def start_background(self) -> None:
        """Start imports in a background thread."""
        if self.running:
            logger.warning('Import scheduler already running')
            return

        if self.interval_seconds <= 0:
            raise ValueError('Import interval must be positive to schedule imports')

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            name='observation-import',
            daemon=True,
        )
        self._thread.start()
        logger.info('Background import scheduler started')

    def stop(self, timeout: float = 5) -> None:
        """Stop background imports."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        logger.info('Import scheduler stopped')
