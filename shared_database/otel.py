from __future__ import annotations

import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from shared_database.core.config import get_settings


_provider: TracerProvider | None = None
_console_attached = False


def _ensure_provider(service_name: str) -> TracerProvider:
    """Install one SDK provider as the global tracer provider; later calls reuse it."""

    global _provider
    if _provider is None:
        settings = get_settings()
        _provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": service_name,
                    "service.version": os.getenv("APP_VERSION", "0.1.0"),
                    "deployment.environment": settings.app_env,
                }
            )
        )
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(service_name: str = "shared-database", enable: bool | None = None) -> TracerProvider | None:
    """Enable span recording for data-access operations.

    Spans go nowhere until an exporter is attached; ``OTEL_CONSOLE_EXPORTER=true``
    attaches a console exporter. Exporting to a collector is left to the host
    application, which owns the provider configuration.
    """

    global _console_attached
    if enable is None:
        enable = get_settings().otel_enabled
    if not enable:
        return None

    provider = _ensure_provider(service_name)
    if not _console_attached and os.getenv("OTEL_CONSOLE_EXPORTER", "false").lower() == "true":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        _console_attached = True
    return provider


def setup_inmemory_otel(service_name: str = "shared-database") -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    _ensure_provider(service_name).add_span_processor(SimpleSpanProcessor(exporter))
    return exporter
