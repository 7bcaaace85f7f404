"""Normalization of raw metric payloads (JSON of any shape, or exposition text)."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple, Union

from pydantic import ValidationError

from metricview.exposition import decode_exposition
from metricview.series import CanonicalMetric, MetricSample, MetricsSnapshot, js_string

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Current time as an ISO 8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (int, float, str)) and not isinstance(value, bool)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _coerce_metric_list(items: List[Any]) -> List[CanonicalMetric]:
    """Validate already-canonical metric entries, dropping the ones that are not."""
    metrics = []
    for index, item in enumerate(items):
        try:
            metrics.append(CanonicalMetric.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed metric entry at index {index}: {e.error_count()} error(s)")
    return metrics


def _array_sample_value(item: Any) -> str:
    if item is None or isinstance(item, (dict, list)):
        return _compact_json(item)
    return js_string(item)


def _property_sample_value(sub_value: Any) -> str:
    # Nested structures only record presence
    if sub_value is None or isinstance(sub_value, (dict, list)):
        return "1"
    return js_string(sub_value)


def synthesize_metrics(data: dict) -> List[CanonicalMetric]:
    """Build one gauge per top-level key of an arbitrary JSON object."""
    metrics = []

    for key, value in data.items():
        if not key:
            continue

        if _is_scalar(value):
            metrics.append(CanonicalMetric(
                name=key,
                help=f"Value of {key}",
                type="gauge",
                values=[MetricSample(labels={}, value=js_string(value))]
            ))

        elif isinstance(value, list):
            metrics.append(CanonicalMetric(
                name=key,
                help=f"Values of {key}",
                type="gauge",
                values=[
                    MetricSample(labels={"index": str(i)}, value=_array_sample_value(item))
                    for i, item in enumerate(value)
                ]
            ))

        elif isinstance(value, dict):
            metrics.append(CanonicalMetric(
                name=key,
                help=f"Properties of {key}",
                type="gauge",
                values=[
                    MetricSample(labels={"property": sub_key}, value=_property_sample_value(sub_value))
                    for sub_key, sub_value in value.items()
                ]
            ))

    return metrics


def normalize_json(data: Union[dict, list], now: Optional[str] = None) -> MetricsSnapshot:
    """
    Coerce a parsed JSON payload into a metrics snapshot.

    Shapes are tried in order: an object carrying a ``metrics`` list, a bare
    list of metrics, then any other object whose keys become gauges.
    """
    timestamp = now or utc_now_iso()

    if isinstance(data, dict) and isinstance(data.get("metrics"), list):
        payload_ts = data.get("timestamp")
        return MetricsSnapshot(
            metrics=_coerce_metric_list(data["metrics"]),
            timestamp=str(payload_ts) if payload_ts else timestamp
        )

    if isinstance(data, list):
        return MetricsSnapshot(metrics=_coerce_metric_list(data), timestamp=timestamp)

    if isinstance(data, dict):
        return MetricsSnapshot(metrics=synthesize_metrics(data), timestamp=timestamp)

    raise TypeError(f"Unsupported JSON payload type: {type(data).__name__}")


def parse_payload(
    body: Union[str, bytes],
    now: Optional[str] = None,
    commit_untyped: bool = False
) -> Tuple[MetricsSnapshot, str]:
    """
    Parse a raw response body, preferring JSON and falling back to text format.

    Returns:
        Tuple of (snapshot, source) where source is ``"json"`` or ``"text"``
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    try:
        data = json.loads(body)
        return normalize_json(data, now=now), "json"
    except Exception as e:
        logger.debug(f"JSON parsing failed, trying Prometheus text format: {e}")

    metrics = decode_exposition(body, commit_untyped=commit_untyped)
    return MetricsSnapshot(metrics=metrics, timestamp=now or utc_now_iso()), "text"
