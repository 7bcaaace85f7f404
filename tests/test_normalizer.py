"""Tests for JSON shape normalization and the JSON-then-text payload parser."""
import json

from conftest import FIXED_NOW

from metricview.normalizer import normalize_json, parse_payload, utc_now_iso


def test_scalar_key_becomes_gauge():
    snapshot = normalize_json({"cpu_usage": 42}, now=FIXED_NOW)

    assert len(snapshot.metrics) == 1
    metric = snapshot.metrics[0]
    assert metric.name == "cpu_usage"
    assert metric.type == "gauge"
    assert metric.help == "Value of cpu_usage"
    assert [(s.labels, s.value) for s in metric.values] == [({}, "42")]
    assert snapshot.timestamp == FIXED_NOW


def test_integral_floats_stringify_without_decimal_point():
    snapshot = normalize_json({"load": 42.0, "ratio": 0.25, "status": "ok"}, now=FIXED_NOW)

    assert [m.values[0].value for m in snapshot.metrics] == ["42", "0.25", "ok"]


def test_array_value_becomes_indexed_samples():
    snapshot = normalize_json({"queue": [1, {"a": 1}, "x", None, True]}, now=FIXED_NOW)
    metric = snapshot.metrics[0]

    assert metric.help == "Values of queue"
    assert [s.labels for s in metric.values] == [{"index": str(i)} for i in range(5)]
    assert [s.value for s in metric.values] == ["1", '{"a":1}', "x", "null", "true"]


def test_nested_object_becomes_property_samples():
    snapshot = normalize_json({"db": {"pool": 5, "meta": {"x": 1}, "tags": [1, 2]}}, now=FIXED_NOW)
    metric = snapshot.metrics[0]

    assert metric.help == "Properties of db"
    assert [(s.labels["property"], s.value) for s in metric.values] == [
        ("pool", "5"),
        ("meta", "1"),
        ("tags", "1"),
    ]


def test_booleans_and_nulls_at_top_level_are_skipped():
    snapshot = normalize_json({"enabled": True, "missing": None, "count": 3}, now=FIXED_NOW)

    assert [m.name for m in snapshot.metrics] == ["count"]


def test_metrics_field_passes_through_with_payload_timestamp():
    payload = {
        "metrics": [
            {"name": "up", "help": "Target up", "type": "gauge", "values": [{"labels": {}, "value": "1"}]},
        ],
        "timestamp": "2025-06-01T12:00:00Z",
    }
    snapshot = normalize_json(payload, now=FIXED_NOW)

    assert snapshot.timestamp == "2025-06-01T12:00:00Z"
    assert snapshot.metrics[0].name == "up"
    assert snapshot.metrics[0].values[0].value == "1"


def test_metrics_field_without_timestamp_uses_now():
    snapshot = normalize_json({"metrics": []}, now=FIXED_NOW)

    assert snapshot.metrics == []
    assert snapshot.timestamp == FIXED_NOW


def test_bare_list_is_the_metric_list():
    payload = [{"name": "up", "type": "gauge", "values": [{"labels": {"job": "api"}, "value": 1}]}]
    snapshot = normalize_json(payload, now=FIXED_NOW)

    assert snapshot.metrics[0].values[0].labels == {"job": "api"}
    assert snapshot.metrics[0].values[0].value == "1"
    assert snapshot.metrics[0].help == ""


def test_malformed_entries_are_dropped():
    payload = [
        {"name": "", "values": []},
        {"values": []},
        {"name": "ok", "type": "gauge", "values": []},
        "not a metric",
    ]
    snapshot = normalize_json(payload, now=FIXED_NOW)

    assert [m.name for m in snapshot.metrics] == ["ok"]


def test_unknown_type_in_json_normalizes_to_unknown():
    snapshot = normalize_json([{"name": "x", "type": "info", "values": []}], now=FIXED_NOW)
    assert snapshot.metrics[0].type == "unknown"


def test_parse_payload_prefers_json():
    snapshot, source = parse_payload(json.dumps({"cpu_usage": 42}), now=FIXED_NOW)

    assert source == "json"
    assert snapshot.metrics[0].name == "cpu_usage"


def test_parse_payload_falls_back_to_text(itsm_exposition):
    snapshot, source = parse_payload(itsm_exposition.encode("utf-8"), now=FIXED_NOW)

    assert source == "text"
    assert len(snapshot.metrics) == 5
    assert snapshot.timestamp == FIXED_NOW


def test_json_scalar_falls_back_to_text():
    snapshot, source = parse_payload("5", now=FIXED_NOW)

    assert source == "text"
    assert snapshot.metrics == []


def test_deeply_nested_json_falls_back_to_text():
    body = "[" * 100000 + "]" * 100000

    snapshot, source = parse_payload(body, now=FIXED_NOW)

    assert source == "text"
    assert snapshot.metrics == []


def test_parse_payload_passes_untyped_switch():
    snapshot, _ = parse_payload("# HELP foo bar\nfoo 5\n", now=FIXED_NOW, commit_untyped=True)
    assert [m.name for m in snapshot.metrics] == ["foo"]


def test_utc_now_iso_format():
    now = utc_now_iso()
    assert now.endswith("Z")
    assert "T" in now
