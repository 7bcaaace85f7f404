"""HTTP client for the upstream metrics endpoint."""
import logging
import time
from typing import Callable, Optional

import requests

from metricview.config import PipelineConfig, SourceConfig
from metricview.normalizer import parse_payload
from metricview.series import MetricsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "application/json, text/plain;q=0.9"


class MetricsFetchError(Exception):
    """Raised when the upstream endpoint cannot be read after all retries."""

    def __init__(self, message: str, url: str, attempts: int, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.attempts = attempts
        self.status_code = status_code


class MetricsClient:
    """Fetches a raw payload and normalizes it into a snapshot."""

    def __init__(
        self,
        config: SourceConfig,
        pipeline: Optional[PipelineConfig] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.config = config
        self.pipeline = pipeline or PipelineConfig()
        self.session = session or requests.Session()
        self._sleep = sleep
        # Source of the last decoded payload ("json" or "text")
        self.last_source: Optional[str] = None

    def _headers(self):
        headers = {"Accept": DEFAULT_ACCEPT}
        headers.update(self.config.headers)
        return headers

    def fetch_body(self) -> bytes:
        """
        GET the raw body, retrying transport errors and 5xx responses.

        Raises:
            MetricsFetchError: after the initial attempt and all retries failed,
                or immediately on a 4xx response
        """
        url = self.config.url
        max_attempts = self.config.retries + 1
        last_error = None
        status_code = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = self.session.get(
                    url,
                    headers=self._headers(),
                    timeout=self.config.timeout_s,
                    verify=self.config.verify_tls
                )
            except requests.RequestException as e:
                last_error = str(e)
                status_code = None
                logger.warning(f"Metrics fetch failed (attempt {attempt}/{max_attempts}): url={url} err={e}")
            else:
                status_code = response.status_code
                if status_code < 400:
                    return response.content

                last_error = f"HTTP {status_code}"
                logger.warning(
                    f"Metrics endpoint returned {status_code} (attempt {attempt}/{max_attempts}): url={url}"
                )
                if status_code < 500:
                    raise MetricsFetchError(
                        f"Failed to fetch metrics from {url}: {last_error}",
                        url=url,
                        attempts=attempt,
                        status_code=status_code
                    )

            if attempt < max_attempts and self.config.retry_backoff_s > 0:
                self._sleep(self.config.retry_backoff_s)

        raise MetricsFetchError(
            f"Failed to fetch metrics from {url} after {max_attempts} attempts: {last_error}",
            url=url,
            attempts=max_attempts,
            status_code=status_code
        )

    def fetch(self) -> MetricsSnapshot:
        """Fetch and normalize the current metrics payload."""
        body = self.fetch_body()
        snapshot, source = parse_payload(
            body,
            commit_untyped=self.pipeline.commit_untyped_metrics
        )
        self.last_source = source
        logger.debug(f"Decoded {len(snapshot.metrics)} metrics from {source} payload")
        return snapshot
