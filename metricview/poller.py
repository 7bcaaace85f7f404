"""Periodic poll loop that keeps the latest metrics snapshot."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from metricview.client import MetricsClient, MetricsFetchError
from metricview.config import PollerConfig
from metricview.self_metrics import SelfMetrics
from metricview.series import MetricsSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PollResult:
    """Outcome of one poll: either a snapshot or a fetch error."""
    polled_at: float
    snapshot: Optional[MetricsSnapshot] = None
    error: Optional[MetricsFetchError] = None
    source: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class MetricsPoller:
    """Polls the upstream endpoint on a fixed interval."""

    def __init__(self, client: MetricsClient, config: PollerConfig, self_metrics: Optional[SelfMetrics] = None):
        self.client = client
        self.config = config
        self.self_metrics = self_metrics
        self.poll_count = 0
        self.start_time = time.time()

        self._latest: Optional[PollResult] = None
        self._last_snapshot: Optional[MetricsSnapshot] = None
        self._lock = threading.Lock()
        self._poll_lock = threading.Lock()
        self._stop_event = threading.Event()

    @property
    def latest(self) -> Optional[PollResult]:
        with self._lock:
            return self._latest

    @property
    def last_snapshot(self) -> Optional[MetricsSnapshot]:
        """Most recent successfully fetched snapshot, kept across failed polls."""
        with self._lock:
            return self._last_snapshot

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def poll_once(self) -> PollResult:
        """Fetch once and replace the cached result."""
        with self._poll_lock:
            started = time.time()
            try:
                snapshot = self.client.fetch()
                result = PollResult(polled_at=started, snapshot=snapshot, source=self.client.last_source)
            except MetricsFetchError as e:
                logger.error(f"Poll failed: {e}")
                result = PollResult(polled_at=started, error=e)

            duration = time.time() - started

            with self._lock:
                self._latest = result
                if result.ok:
                    self._last_snapshot = result.snapshot
                self.poll_count += 1

            if self.self_metrics:
                if result.ok:
                    self.self_metrics.record_success(result.source, len(result.snapshot.metrics), duration)
                else:
                    self.self_metrics.record_error(duration)

            if result.ok:
                logger.info(
                    f"Poll {self.poll_count}: {len(result.snapshot.metrics)} metrics "
                    f"({result.source}) in {duration:.3f}s"
                )
            return result

    def run(self):
        """Poll until stopped."""
        self.start_time = time.time()

        logger.info(f"Starting metrics poller (interval {self.config.interval_s}s, url {self.client.config.url})")

        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Error in poll: {e}", exc_info=True)

            self._stop_event.wait(self.config.interval_s)

    def stop(self):
        """Stop the poll loop."""
        logger.info("Stopping metrics poller")
        self._stop_event.set()


def run_poller_thread(poller: MetricsPoller):
    """Run poller in a separate thread."""
    try:
        poller.run()
    except Exception as e:
        logger.error(f"Poller thread error: {e}", exc_info=True)
        poller.stop()
