"""HTTP API serving normalized metrics and dashboard views using FastAPI."""
from typing import Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel
import logging
import time

from metricview.config import Config
from metricview.exposition import encode_exposition
from metricview.poller import MetricsPoller
from metricview.self_metrics import SelfMetrics
from metricview.series import MetricsSnapshot
from metricview.view import DashboardView, ErrorView, build_view, error_view, render_payload

logger = logging.getLogger(__name__)


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class MetricsAPI:
    """FastAPI application exposing the metrics pipeline."""

    def __init__(self, config: Config, poller: Optional[MetricsPoller] = None, self_metrics: Optional[SelfMetrics] = None):
        """
        Initialize the API.

        Args:
            config: Loaded application configuration
            poller: Poller holding the latest fetch result; None for a
                render-only service
            self_metrics: Self-monitoring metrics served on /metrics
        """
        self.config = config
        self.poller = poller
        self.self_metrics = self_metrics or SelfMetrics()
        self.start_time = time.time()
        self.app = FastAPI(title="Metrics Normalization API")

        self._setup_routes()

    def _require_poller(self) -> MetricsPoller:
        if self.poller is None:
            raise HTTPException(status_code=503, detail="Poller is not configured")
        return self.poller

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/status")
        async def status():
            """Get current poller status."""
            latest = self.poller.latest if self.poller else None
            snapshot = self.poller.last_snapshot if self.poller else None

            return {
                "uptime_seconds": time.time() - self.start_time,
                "poll_count": self.poller.poll_count if self.poller else 0,
                "last_poll_at": latest.polled_at if latest else None,
                "last_poll_ok": latest.ok if latest else None,
                "last_error": str(latest.error) if latest and latest.error else None,
                "last_source": latest.source if latest else None,
                "metric_count": len(snapshot.metrics) if snapshot else 0,
                "config": {
                    "source_url": self.config.source.url,
                    "interval_s": self.config.poller.interval_s,
                    "retries": self.config.source.retries,
                    "commit_untyped_metrics": self.config.pipeline.commit_untyped_metrics,
                    "exclusive_groups": self.config.pipeline.exclusive_groups,
                }
            }

        @self.app.get("/api/prometheus-metrics", response_model=MetricsSnapshot)
        async def prometheus_metrics(format: str = "json"):
            """Last successfully fetched snapshot, as JSON or exposition text."""
            poller = self._require_poller()
            snapshot = poller.last_snapshot

            if snapshot is None:
                latest = poller.latest
                detail = str(latest.error) if latest and latest.error else "Metrics have not been fetched yet"
                raise HTTPException(status_code=503, detail=detail)

            if format == "text":
                return PlainTextResponse(encode_exposition(snapshot.metrics), media_type=CONTENT_TYPE_LATEST)
            if format != "json":
                raise HTTPException(status_code=400, detail=f"Unsupported format: {format}")
            return snapshot

        @self.app.get("/api/metric-groups", response_model=DashboardView)
        async def metric_groups():
            """Grouped, render-ready view of the latest poll."""
            poller = self._require_poller()
            latest = poller.latest

            if latest is None:
                return DashboardView(error=ErrorView(message="Metrics have not been fetched yet"))
            if not latest.ok:
                return error_view(latest.error)
            return build_view(latest.snapshot, exclusive=self.config.pipeline.exclusive_groups)

        @self.app.post("/api/render", response_model=DashboardView)
        async def render(request: Request):
            """Run the pipeline on a raw payload posted in the request body."""
            body = await request.body()
            if not body.strip():
                raise HTTPException(status_code=400, detail="Request body is empty")

            try:
                return render_payload(
                    body,
                    commit_untyped=self.config.pipeline.commit_untyped_metrics,
                    exclusive=self.config.pipeline.exclusive_groups
                )
            except Exception as e:
                logger.error(f"Error rendering payload: {e}", exc_info=True)
                raise HTTPException(status_code=500, detail=str(e))

        @self.app.post("/control/refresh")
        def refresh():
            """Poll the upstream endpoint now."""
            poller = self._require_poller()
            result = poller.poll_once()

            if not result.ok:
                return {
                    "status": "error",
                    "error": str(result.error),
                    "timestamp": time.time()
                }
            return {
                "status": "refreshed",
                "metric_count": len(result.snapshot.metrics),
                "source": result.source,
                "timestamp": time.time()
            }

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

        @self.app.get("/metrics")
        async def metrics():
            """Self-monitoring metrics in exposition format."""
            return Response(content=self.self_metrics.render(), media_type=CONTENT_TYPE_LATEST)

    def run(self, host: str = "0.0.0.0", port: int = 8081):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
