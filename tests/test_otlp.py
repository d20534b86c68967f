"""Tests for the built-in OTLP exporter."""

from __future__ import annotations

import json
import time

from strand import configure, do
from strand._config import reset_config
from strand.exporters.otlp import _attrs_to_kv, _build_otlp_body, otel

SCOPE_ID = "3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b"
ROOT_ID = "0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d"


def _span(body: dict) -> dict:
    return body["resourceSpans"][0]["scopeSpans"][0]["spans"][0]


# ---------------------------------------------------------------------------
# _attrs_to_kv
# ---------------------------------------------------------------------------

class TestAttrsToKv:
    def test_string_value(self):
        result = _attrs_to_kv({"key": "value"})
        assert result == [{"key": "key", "value": {"stringValue": "value"}}]

    def test_int_value_encoded_as_string(self):
        result = _attrs_to_kv({"count": 5})
        assert result == [{"key": "count", "value": {"intValue": "5"}}]

    def test_float_value(self):
        result = _attrs_to_kv({"ratio": 0.25})
        assert result == [{"key": "ratio", "value": {"doubleValue": 0.25}}]

    def test_bool_value(self):
        result = _attrs_to_kv({"flag": True})
        assert result == [{"key": "flag", "value": {"boolValue": True}}]

    def test_none_value_excluded(self):
        result = _attrs_to_kv({"present": "yes", "absent": None})
        assert len(result) == 1
        assert result[0]["key"] == "present"

    def test_empty_dict_returns_empty_list(self):
        assert _attrs_to_kv({}) == []


# ---------------------------------------------------------------------------
# _build_otlp_body
# ---------------------------------------------------------------------------

class TestBuildOtlpBody:
    def test_service_name_in_resource(self):
        body = _build_otlp_body({}, "my-service", 0)
        resource_attrs = body["resourceSpans"][0]["resource"]["attributes"]
        svc = next(a for a in resource_attrs if a["key"] == "service.name")
        assert svc["value"]["stringValue"] == "my-service"

    def test_span_name_and_kind(self):
        span = _span(_build_otlp_body({}, "s", 0))
        assert span["name"] == "strand.scope"
        assert span["kind"] == 1  # INTERNAL

    def test_trace_id_from_root_scope(self):
        span = _span(_build_otlp_body({"strand.root_id": ROOT_ID}, "s", 0))
        assert span["traceId"] == ROOT_ID.replace("-", "")
        assert len(span["traceId"]) == 32

    def test_span_id_from_scope_id(self):
        span = _span(_build_otlp_body({"strand.scope_id": SCOPE_ID}, "s", 0))
        assert span["spanId"] == SCOPE_ID.replace("-", "")[:16]

    def test_parent_span_id_only_for_nested_scopes(self):
        top = _span(_build_otlp_body({"strand.scope_id": SCOPE_ID}, "s", 0))
        assert "parentSpanId" not in top
        nested = _span(
            _build_otlp_body({"strand.scope_id": SCOPE_ID, "strand.parent_id": ROOT_ID}, "s", 0)
        )
        assert nested["parentSpanId"] == ROOT_ID.replace("-", "")[:16]

    def test_random_ids_without_scope_attrs(self):
        span = _span(_build_otlp_body({}, "s", 0))
        assert len(span["traceId"]) == 32
        assert len(span["spanId"]) == 16

    def test_status_ok_without_failure(self):
        span = _span(_build_otlp_body({"strand.failure": None}, "s", 0))
        assert span["status"]["code"] == 1

    def test_status_error_with_failure(self):
        span = _span(_build_otlp_body({"strand.failure": "ValueError('x')"}, "s", 0))
        assert span["status"]["code"] == 2

    def test_start_time_derived_from_duration(self):
        ts = 1_700_000_000_000_000_000
        span = _span(_build_otlp_body({"strand.duration_ms": 5}, "s", ts))
        assert span["endTimeUnixNano"] == str(ts)
        assert span["startTimeUnixNano"] == str(ts - 5_000_000)

    def test_body_is_json_serializable(self):
        body = _build_otlp_body(
            {"strand.scope_id": SCOPE_ID, "strand.spawned": 3, "strand.duration_ms": 12},
            "strand",
            int(time.time_ns()),
        )
        assert json.loads(json.dumps(body)) == body


# ---------------------------------------------------------------------------
# otel factory
# ---------------------------------------------------------------------------

class TestOtelFactory:
    def teardown_method(self):
        reset_config()

    def test_returns_callable(self):
        emitter = otel(endpoint="http://localhost:4318/v1/traces")
        assert callable(emitter)

    def test_emitter_does_not_block(self):
        emitter = otel(endpoint="http://localhost:19999/v1/traces")  # non-existent
        start = time.monotonic()
        emitter({"strand.scope_id": SCOPE_ID, "strand.spawned": 1})
        assert time.monotonic() - start < 1.0

    def test_emitter_swallows_connection_error(self):
        emitter = otel(endpoint="http://localhost:19999/nope")
        emitter({"strand.scope_id": SCOPE_ID})
        time.sleep(0.1)  # let the daemon thread attempt and fail

    def test_usable_as_configured_tracer(self):
        configure(tracer=otel(endpoint="http://localhost:19999/v1/traces"))
        done = []
        do(lambda scope: scope.spawn(lambda: done.append(True)))
        assert done == [True]
