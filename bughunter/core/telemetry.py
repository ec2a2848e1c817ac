from __future__ import annotations

import logging

from fastapi import FastAPI

from bughunter.core.config import Settings

logger = logging.getLogger(__name__)


def setup_telemetry(app: FastAPI, cfg: Settings, *, service_name: str, version: str) -> bool:
    """Trace incoming requests and outgoing Jira/LLM calls over OTLP.

    Returns True when tracing was turned on.
    """
    endpoint = cfg.otel_exporter_otlp_endpoint
    if not endpoint:
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
    except ImportError:
        logger.warning(
            "[OTEL] endpoint %s configured but the 'telemetry' extra is not installed",
            endpoint,
        )
        return False

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": version,
            "deployment.environment": cfg.env,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)

    # /health and /metrics are scraped constantly; keep them out of traces
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,metrics")
    HTTPXClientInstrumentor().instrument()
    logger.info("[OTEL] tracing %s %s (%s) to %s", service_name, version, cfg.env, endpoint)
    return True
