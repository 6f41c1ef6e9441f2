from __future__ import annotations

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

# Health probes and scrapes would otherwise dominate the trace volume
EXCLUDED_URLS = "healthz,readyz,metrics,static"

_configured = False


def parse_otlp_headers(raw: str | None) -> dict[str, str] | None:
    """Turn ``key=value,key2=value2`` into a header dict."""
    if not raw:
        return None
    result: dict[str, str] = {}
    for pair in (item.strip() for item in raw.split(",")):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        result[key.strip()] = value.strip()
    return result or None


def build_resource(
    service_name: str,
    service_version: str | None = None,
    environment: str | None = None,
) -> Resource:
    attributes = {"service.name": service_name}
    if service_version:
        attributes["service.version"] = service_version
    if environment:
        attributes["deployment.environment"] = environment
    return Resource.create(attributes)


def configure_tracing(
    app,
    service_name: str,
    endpoint: str | None,
    headers: str | None,
    *,
    service_version: str | None = None,
    environment: str | None = None,
) -> bool:
    """Export spans for inbound requests and the outbound email API calls.

    Returns False when no endpoint is configured or tracing is already on.
    """
    global _configured
    if _configured or not endpoint:
        return False

    provider = TracerProvider(
        resource=build_resource(service_name, service_version, environment)
    )
    exporter = OTLPSpanExporter(
        endpoint=endpoint, headers=parse_otlp_headers(headers)
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, excluded_urls=EXCLUDED_URLS)
    HTTPXClientInstrumentor().instrument()
    _configured = True
    return True
