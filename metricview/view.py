"""Render-ready view model built from a metrics snapshot."""
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from metricview.classifier import classify_metrics
from metricview.normalizer import parse_payload
from metricview.presentation import PresentationSpec, select_presentation
from metricview.series import MetricsSnapshot


class MetricView(BaseModel):
    name: str
    help: str
    type: str
    presentation: PresentationSpec


class GroupView(BaseModel):
    key: str
    title: str
    metrics: List[MetricView] = Field(default_factory=list)


class ErrorView(BaseModel):
    """Inline error state shown instead of metric groups."""
    message: str
    url: Optional[str] = None
    attempts: int = 0
    status_code: Optional[int] = None


class DashboardView(BaseModel):
    timestamp: Optional[str] = None
    groups: List[GroupView] = Field(default_factory=list)
    error: Optional[ErrorView] = None


def build_view(snapshot: MetricsSnapshot, exclusive: bool = False) -> DashboardView:
    """Classify a snapshot and attach a presentation to every metric."""
    groups = []
    for group in classify_metrics(snapshot.metrics, exclusive=exclusive):
        groups.append(GroupView(
            key=group.key,
            title=group.title,
            metrics=[
                MetricView(
                    name=metric.name,
                    help=metric.help,
                    type=metric.type,
                    presentation=select_presentation(metric)
                )
                for metric in group.metrics
            ]
        ))
    return DashboardView(timestamp=snapshot.timestamp, groups=groups)


def error_view(error: Exception, timestamp: Optional[str] = None) -> DashboardView:
    """Build the view shown when the last fetch failed."""
    return DashboardView(
        timestamp=timestamp,
        error=ErrorView(
            message=str(error),
            url=getattr(error, "url", None),
            attempts=getattr(error, "attempts", 0),
            status_code=getattr(error, "status_code", None)
        )
    )


def render_payload(
    body: Union[str, bytes],
    now: Optional[str] = None,
    commit_untyped: bool = False,
    exclusive: bool = False
) -> DashboardView:
    """Run the whole pipeline on a raw response body."""
    snapshot, _ = parse_payload(body, now=now, commit_untyped=commit_untyped)
    return build_view(snapshot, exclusive=exclusive)
