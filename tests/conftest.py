"""Shared fixtures: canned payloads and a fake HTTP session."""
import pytest
import requests

FIXED_NOW = "2026-01-01T00:00:00.000Z"

ITSM_EXPOSITION = """\
# HELP buopsoit_memory_usage_bytes Process memory usage in bytes
# TYPE buopsoit_memory_usage_bytes gauge
buopsoit_memory_usage_bytes 1536
# HELP buopsoit_http_requests_total Total number of HTTP requests
# TYPE buopsoit_http_requests_total counter
buopsoit_http_requests_total{method="GET",route="/api/incidents",status_code="200",tenant_id="1"} 42
buopsoit_http_requests_total{method="POST",route="/api/incidents",status_code="201",tenant_id="1"} 7
# HELP buopsoit_tenants_total Total number of tenants in the system
# TYPE buopsoit_tenants_total gauge
buopsoit_tenants_total 3
# HELP buopsoit_db_query_duration_seconds Duration of database queries in seconds
# TYPE buopsoit_db_query_duration_seconds histogram
buopsoit_db_query_duration_seconds{le="0.5"} 10
buopsoit_db_query_duration_seconds{le="0.1"} 3
buopsoit_db_query_duration_seconds{le="+Inf"} 12
# HELP buopsoit_errors_total Total number of errors
# TYPE buopsoit_errors_total counter
buopsoit_errors_total 0
"""


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, text="", status_code=200):
        self.content = text.encode("utf-8") if isinstance(text, str) else text
        self.status_code = status_code

    @property
    def text(self):
        # requests falls back to ISO-8859-1 for text/plain without a charset
        return self.content.decode("iso-8859-1")


class FakeSession:
    """Replays queued responses (or raises queued exceptions) for GET calls."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def itsm_exposition():
    return ITSM_EXPOSITION


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
