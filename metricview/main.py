"""Main entry point for the metrics normalization service."""
import argparse
import json
import logging
import signal
import sys
import threading

from metricview.api import MetricsAPI
from metricview.client import MetricsClient
from metricview.config import load_config
from metricview.poller import MetricsPoller, run_poller_thread
from metricview.self_metrics import SelfMetrics
from metricview.view import render_payload


class JsonLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record):
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    datefmt = "%Y-%m-%d %H:%M:%S"

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonLogFormatter(datefmt=datefmt))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt))

    logging.basicConfig(level=level, handlers=[handler])

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def render_file(path: str, config) -> int:
    """Run the pipeline once on a saved payload and print the view."""
    with open(path, "rb") as f:
        body = f.read()

    view = render_payload(
        body,
        commit_untyped=config.pipeline.commit_untyped_metrics,
        exclusive=config.pipeline.exclusive_groups
    )
    print(view.model_dump_json(indent=2))
    return 0


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Metrics Normalization Service - poll, normalize and group Prometheus metrics"
    )
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--render",
        metavar="PAYLOAD",
        help="Render a saved JSON or exposition payload to stdout and exit"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    if args.render:
        try:
            sys.exit(render_file(args.render, config))
        except OSError as e:
            logger.error(f"Cannot read payload {args.render}: {e}")
            sys.exit(1)

    logger.info("=" * 60)
    logger.info("Metrics Normalization Service")
    logger.info("=" * 60)
    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Source: {config.source.url}")
    logger.info(f"Poll interval: {config.poller.interval_s}s")

    self_metrics = SelfMetrics()
    client = MetricsClient(config.source, config.pipeline)
    poller = MetricsPoller(client, config.poller, self_metrics)
    api = MetricsAPI(config, poller, self_metrics)

    if config.poller.enabled:
        poller_thread = threading.Thread(
            target=run_poller_thread,
            args=(poller,),
            daemon=True
        )
        poller_thread.start()
        logger.info("Metrics poller started")
    else:
        logger.info("Metrics poller disabled, use /control/refresh to fetch")

    # Setup signal handlers
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        poller.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    # Run API (blocking)
    logger.info(f"Starting API on {config.global_.api_host}:{config.global_.api_port}")
    try:
        api.run(
            host=config.global_.api_host,
            port=config.global_.api_port
        )
    except Exception as e:
        logger.error(f"API error: {e}", exc_info=True)
        poller.stop()
        sys.exit(1)


if __name__ == "__main__":
    main()
