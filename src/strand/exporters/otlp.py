"""
Built-in OTLP emitter.

POSTs HTTP/JSON to any OTLP endpoint, one span per closed scope. No
opentelemetry-sdk dependency required.
Configure via: strand.configure(tracer=strand.exporters.otlp.otel(endpoint="..."))
"""

from __future__ import annotations

import json
import secrets
import time
import threading
from typing import Any
from urllib.request import urlopen, Request
from urllib.error import URLError

import structlog

logger = structlog.get_logger()


def otel(
    endpoint: str = "http://localhost:4318/v1/traces",
    service_name: str = "strand",
    timeout_seconds: float = 5.0,
) -> Any:
    """
    Factory that returns a tracer callable compatible with strand.configure(tracer=...).

    The returned callable accepts the span attributes of a closed scope and
    POSTs them as an OTLP HTTP/JSON trace to the configured endpoint.
    """

    def _emit(span_attrs: dict[str, Any]) -> None:
        """
        Fire-and-forget OTLP span emission.

        Runs in a daemon thread so it never delays the closing scope.
        Network errors are logged at debug and dropped.
        """

        def _post() -> None:
            try:
                now_ns = int(time.time_ns())
                body = _build_otlp_body(span_attrs, service_name, now_ns)
                payload = json.dumps(body).encode("utf-8")
                req = Request(
                    endpoint,
                    data=payload,
                    headers={
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                    },
                    method="POST",
                )
                with urlopen(req, timeout=timeout_seconds) as resp:
                    resp.read()  # drain
            except (URLError, OSError) as exc:
                logger.debug("otlp.export_failed", endpoint=endpoint, error=repr(exc))

        t = threading.Thread(target=_post, daemon=True)
        t.start()

    return _emit


def _build_otlp_body(
    span_attrs: dict[str, Any],
    service_name: str,
    now_ns: int,
) -> dict:
    """Build a minimal OTLP HTTP/JSON trace body with a single span."""
    kv_attrs = _attrs_to_kv(span_attrs)
    resource_attrs = _attrs_to_kv({"service.name": service_name})

    duration_ms = span_attrs.get("strand.duration_ms")
    if duration_ms is not None:
        start_time_unix_nano = now_ns - int(duration_ms * 1_000_000)
    else:
        start_time_unix_nano = now_ns
    end_time_unix_nano = now_ns

    # Nested scopes share their root scope's id as traceId so a whole tree
    # appears as one trace. Scope ids are UUID4: strip hyphens for the 32-hex
    # traceId and take the first 16 hex chars for spanId.
    root_id: str | None = span_attrs.get("strand.root_id")
    scope_id: str | None = span_attrs.get("strand.scope_id")
    parent_id: str | None = span_attrs.get("strand.parent_id")
    trace_id = root_id.replace("-", "") if root_id else secrets.token_hex(16)
    span_id = scope_id.replace("-", "")[:16] if scope_id else secrets.token_hex(8)

    span: dict[str, Any] = {
        "traceId": trace_id,
        "spanId": span_id,
        "name": "strand.scope",
        "kind": 1,  # INTERNAL
        "startTimeUnixNano": str(start_time_unix_nano),
        "endTimeUnixNano": str(end_time_unix_nano),
        "attributes": kv_attrs,
        # ERROR when a failure was retained, else OK
        "status": {"code": 2 if span_attrs.get("strand.failure") else 1},
    }
    if parent_id:
        span["parentSpanId"] = parent_id.replace("-", "")[:16]

    body = {
        "resourceSpans": [
            {
                "resource": {
                    "attributes": resource_attrs,
                },
                "scopeSpans": [
                    {
                        "scope": {
                            "name": "strand",
                            "version": "0.1.0",
                        },
                        "spans": [span],
                    }
                ],
            }
        ]
    }
    return body


def _attrs_to_kv(attrs: dict[str, Any]) -> list[dict]:
    """Convert a flat dict to OTLP KeyValue list."""
    result = []
    for key, value in attrs.items():
        if value is None:
            continue
        if isinstance(value, bool):
            kv = {"key": key, "value": {"boolValue": value}}
        elif isinstance(value, int):
            kv = {"key": key, "value": {"intValue": str(value)}}
        elif isinstance(value, float):
            kv = {"key": key, "value": {"doubleValue": value}}
        else:
            kv = {"key": key, "value": {"stringValue": str(value)}}
        result.append(kv)
    return result
