"""Assignment of canonical metrics to display groups by name keywords."""
from typing import List, Sequence, Tuple

from pydantic import BaseModel, Field

from metricview.series import CanonicalMetric


class MetricGroup(BaseModel):
    """A named display bucket of metrics."""
    key: str
    title: str
    metrics: List[CanonicalMetric] = Field(default_factory=list)


# Priority order matters only for exclusive classification
GROUP_KEYWORDS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("system", "System Metrics", ("memory", "cpu", "process")),
    ("http", "HTTP Metrics", ("http", "request")),
    ("business", "Business Metrics", (
        "incidents", "service_requests", "change_requests",
        "active_sessions", "users", "tenants",
    )),
    ("database", "Database Metrics", ("db", "database", "query")),
)

OTHER_GROUP = ("other", "Other Metrics")


def matches_group(name: str, keywords: Sequence[str]) -> bool:
    """Check whether a metric name contains any of the group keywords."""
    return any(keyword in name for keyword in keywords)


def classify_metrics(metrics: Sequence[CanonicalMetric], exclusive: bool = False) -> List[MetricGroup]:
    """
    Split metrics into the five fixed groups.

    By default every group filters independently, so one metric can land in
    several groups. With ``exclusive`` the first matching group wins. Metrics
    matching no group go to Other.
    """
    groups = [MetricGroup(key=key, title=title) for key, title, _ in GROUP_KEYWORDS]
    other = MetricGroup(key=OTHER_GROUP[0], title=OTHER_GROUP[1])

    for metric in metrics:
        matched = False
        for group, (_, _, keywords) in zip(groups, GROUP_KEYWORDS):
            if matches_group(metric.name, keywords):
                group.metrics.append(metric)
                matched = True
                if exclusive:
                    break
        if not matched:
            other.metrics.append(metric)

    return groups + [other]
