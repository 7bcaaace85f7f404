"""Selection of a rendering strategy for each canonical metric."""
import json
import math
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from metricview.formatting import format_duration, format_metric_value, parse_number, round_half_up
from metricview.series import CanonicalMetric

PERCENT_MARKERS = ("_percent", "_usage")
PERCENT_RANGE_MARKERS = ("utilization", "cpu", "memory")
BUCKET_LABELS = ("le", "bucket")


class ScalarSpec(BaseModel):
    kind: Literal["scalar"] = "scalar"
    formatted_value: str


class GaugeSpec(BaseModel):
    """Percentage gauge; ``bar`` is the fill level clamped to 0-100."""
    kind: Literal["gauge"] = "gauge"
    percent: int
    bar: float


class HistogramBucket(BaseModel):
    bucket: str
    count: Optional[float]
    le: str


class HistogramSpec(BaseModel):
    kind: Literal["histogram"] = "histogram"
    buckets: List[HistogramBucket] = Field(default_factory=list)


class LabelRow(BaseModel):
    labels: Dict[str, str] = Field(default_factory=dict)
    chips: List[str] = Field(default_factory=list)
    formatted_value: str


class LabelTableSpec(BaseModel):
    kind: Literal["label_table"] = "label_table"
    rows: List[LabelRow] = Field(default_factory=list)


class RawFallbackSpec(BaseModel):
    kind: Literal["raw"] = "raw"
    json_text: str


PresentationSpec = Annotated[
    Union[ScalarSpec, GaugeSpec, HistogramSpec, LabelTableSpec, RawFallbackSpec],
    Field(discriminator="kind")
]


def _is_percent_like(name: str, value: float) -> bool:
    if any(marker in name for marker in PERCENT_MARKERS):
        return True
    return 0 <= value <= 100 and any(marker in name for marker in PERCENT_RANGE_MARKERS)


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _bucket_bound(sample) -> Tuple[bool, float]:
    bound = parse_number(sample.labels["le"])
    return math.isnan(bound), bound


def _histogram(metric: CanonicalMetric) -> HistogramSpec:
    bucketed = [s for s in metric.values if s.labels.get("le")]
    bucketed.sort(key=_bucket_bound)

    buckets = []
    for sample in bucketed:
        buckets.append(HistogramBucket(
            bucket=format_duration(parse_number(sample.labels["le"])),
            count=_finite_or_none(parse_number(sample.value)),
            le=sample.labels["le"]
        ))
    return HistogramSpec(buckets=buckets)


def _label_table(metric: CanonicalMetric) -> LabelTableSpec:
    rows = []
    for sample in metric.values:
        rows.append(LabelRow(
            labels=dict(sample.labels),
            chips=[f"{k}={v}" for k, v in sample.labels.items()],
            formatted_value=format_metric_value(parse_number(sample.value), metric)
        ))
    return LabelTableSpec(rows=rows)


def _raw_fallback(metric: CanonicalMetric) -> RawFallbackSpec:
    samples = [sample.model_dump() for sample in metric.values]
    return RawFallbackSpec(json_text=json.dumps(samples, indent=2, ensure_ascii=False))


def select_presentation(metric: CanonicalMetric):
    """
    Choose how a metric should be drawn.

    Decision order:
        1. single unlabelled sample that looks like a percentage -> gauge
        2. single unlabelled sample -> scalar
        3. bucketed histogram samples -> histogram ordered by ``le``
        4. several samples with labels -> label table
        5. anything else -> raw JSON dump of the samples

    Returns:
        One of the PresentationSpec variants
    """
    samples = metric.values

    if len(samples) == 1 and not samples[0].labels:
        value = parse_number(samples[0].value)

        if math.isfinite(value) and _is_percent_like(metric.name, value):
            return GaugeSpec(percent=round_half_up(value), bar=min(max(value, 0.0), 100.0))

        return ScalarSpec(formatted_value=format_metric_value(value, metric))

    if len(samples) > 1:
        all_bucketed = all(
            any(sample.labels.get(label) for label in BUCKET_LABELS)
            for sample in samples
        )
        if all_bucketed and metric.type == "histogram":
            return _histogram(metric)

        if any(sample.labels for sample in samples):
            return _label_table(metric)

    return _raw_fallback(metric)
