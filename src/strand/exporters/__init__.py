"""Span exporters usable as `strand.configure(tracer=...)`."""

from .otlp import otel

__all__ = ["otel"]
