"""Tests for presentation selection."""
import json

from metricview.presentation import (
    GaugeSpec,
    HistogramSpec,
    LabelTableSpec,
    RawFallbackSpec,
    ScalarSpec,
    select_presentation,
)
from metricview.series import CanonicalMetric


def _metric(name, values, metric_type="gauge"):
    return CanonicalMetric(name=name, type=metric_type, values=values)


def test_percent_metric_renders_as_gauge():
    spec = select_presentation(_metric("memory_usage_percent", [{"labels": {}, "value": "73"}]))

    assert isinstance(spec, GaugeSpec)
    assert spec.percent == 73
    assert spec.bar == 73.0


def test_cpu_value_in_range_renders_as_gauge():
    spec = select_presentation(_metric("node_cpu_utilization", [{"labels": {}, "value": "41.6"}]))

    assert isinstance(spec, GaugeSpec)
    assert spec.percent == 42


def test_usage_gauge_above_hundred_clamps_bar_only():
    spec = select_presentation(_metric("disk_usage", [{"labels": {}, "value": "150"}]))

    assert spec.percent == 150
    assert spec.bar == 100.0


def test_usage_marker_wins_over_byte_units():
    spec = select_presentation(_metric("buopsoit_memory_usage_bytes", [{"labels": {}, "value": "1536"}]))

    # "_usage" is present, so this is still a gauge
    assert isinstance(spec, GaugeSpec)

    spec = select_presentation(_metric("process_resident_memory_bytes", [{"labels": {}, "value": "1536"}]))
    assert isinstance(spec, ScalarSpec)
    assert spec.formatted_value == "1.50 KB"


def test_single_unlabelled_sample_renders_as_scalar():
    spec = select_presentation(_metric("uptime_seconds", [{"labels": {}, "value": "125"}]))

    assert isinstance(spec, ScalarSpec)
    assert spec.formatted_value == "2m 5s"


def test_non_numeric_percent_value_falls_back_to_scalar():
    spec = select_presentation(_metric("cpu_percent", [{"labels": {}, "value": "n/a"}]))

    assert isinstance(spec, ScalarSpec)
    assert spec.formatted_value == "NaN"


def test_histogram_buckets_sorted_by_bound():
    metric = _metric(
        "request_count",
        [
            {"labels": {"le": "0.5"}, "value": "10"},
            {"labels": {"le": "+Inf"}, "value": "12"},
            {"labels": {"le": "0.1"}, "value": "3"},
        ],
        metric_type="histogram",
    )
    spec = select_presentation(metric)

    assert isinstance(spec, HistogramSpec)
    assert [b.le for b in spec.buckets] == ["0.1", "0.5", "+Inf"]
    assert [b.bucket for b in spec.buckets] == ["100.00ms", "500.00ms", "+Inf"]
    assert [b.count for b in spec.buckets] == [3.0, 10.0, 12.0]


def test_empty_bound_is_not_plotted():
    metric = _metric(
        "request_count",
        [
            {"labels": {"le": "0.1"}, "value": "3"},
            {"labels": {"le": "", "bucket": "overflow"}, "value": "9"},
            {"labels": {"le": "+Inf"}, "value": "12"},
        ],
        metric_type="histogram",
    )
    spec = select_presentation(metric)

    assert isinstance(spec, HistogramSpec)
    assert [b.le for b in spec.buckets] == ["0.1", "+Inf"]


def test_empty_bucket_labels_do_not_make_a_histogram():
    metric = _metric(
        "request_count",
        [{"labels": {"le": "0.5"}, "value": "10"}, {"labels": {"le": ""}, "value": "3"}],
        metric_type="histogram",
    )
    assert isinstance(select_presentation(metric), LabelTableSpec)


def test_bucket_labels_without_histogram_type_render_as_table():
    metric = _metric(
        "request_count",
        [{"labels": {"le": "0.5"}, "value": "10"}, {"labels": {"le": "0.1"}, "value": "3"}],
        metric_type="gauge",
    )
    assert isinstance(select_presentation(metric), LabelTableSpec)


def test_histogram_requires_every_sample_bucketed():
    metric = _metric(
        "request_count",
        [{"labels": {"le": "0.5"}, "value": "10"}, {"labels": {"method": "GET"}, "value": "3"}],
        metric_type="histogram",
    )
    assert isinstance(select_presentation(metric), LabelTableSpec)


def test_labelled_samples_render_as_table():
    metric = _metric(
        "buopsoit_http_requests_total",
        [
            {"labels": {"method": "GET", "status_code": "200"}, "value": "1500"},
            {"labels": {"method": "POST", "status_code": "201"}, "value": "7"},
        ],
        metric_type="counter",
    )
    spec = select_presentation(metric)

    assert isinstance(spec, LabelTableSpec)
    assert spec.rows[0].chips == ["method=GET", "status_code=200"]
    assert spec.rows[0].labels == {"method": "GET", "status_code": "200"}
    assert [row.formatted_value for row in spec.rows] == ["1.50K", "7"]


def test_single_labelled_sample_falls_back_to_raw():
    metric = _metric("buopsoit_tenants", [{"labels": {"tenant_id": "1"}, "value": "3"}])
    spec = select_presentation(metric)

    assert isinstance(spec, RawFallbackSpec)
    assert json.loads(spec.json_text) == [{"labels": {"tenant_id": "1"}, "value": "3"}]


def test_multiple_unlabelled_samples_fall_back_to_raw():
    metric = _metric("x", [{"labels": {}, "value": "1"}, {"labels": {}, "value": "2"}])
    assert isinstance(select_presentation(metric), RawFallbackSpec)


def test_empty_metric_renders_empty_raw():
    spec = select_presentation(_metric("x", []))

    assert isinstance(spec, RawFallbackSpec)
    assert spec.json_text == "[]"
