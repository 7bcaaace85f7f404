"""Canonical metric data structures shared by every stage of the pipeline."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

METRIC_TYPES = ("counter", "gauge", "histogram", "summary", "unknown")

MetricType = Literal["counter", "gauge", "histogram", "summary", "unknown"]


def js_string(value: Any) -> str:
    """Stringify a scalar the way a JavaScript client would (42.0 -> "42")."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_type(raw: Optional[str]) -> str:
    """Map an exposition type token onto the canonical type vocabulary."""
    token = (raw or "").strip().lower()
    return token if token in METRIC_TYPES else "unknown"


class MetricSample(BaseModel):
    """A single observed value with its label set."""
    model_config = ConfigDict(frozen=True)

    labels: Dict[str, str] = Field(default_factory=dict)
    value: str = "0"

    @field_validator("labels", mode="before")
    @classmethod
    def stringify_labels(cls, v):
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): js_string(val) for k, val in v.items()}
        return v

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v):
        if v is None:
            return "0"
        if isinstance(v, (int, float)):
            return js_string(v)
        return v


class CanonicalMetric(BaseModel):
    """One named metric series in normalized form."""
    model_config = ConfigDict(frozen=True)

    name: str
    help: str = ""
    type: MetricType = "unknown"
    values: List[MetricSample] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v:
            raise ValueError("Metric name must be non-empty")
        return v

    @field_validator("help", mode="before")
    @classmethod
    def default_help(cls, v):
        return "" if v is None else v

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v):
        return normalize_type(v if isinstance(v, str) else None)


class MetricsSnapshot(BaseModel):
    """Result of one poll: the full metric list plus when it was taken."""
    metrics: List[CanonicalMetric] = Field(default_factory=list)
    timestamp: str
