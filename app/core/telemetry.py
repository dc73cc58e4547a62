import os
from fastapi import FastAPI
from opentelemetry import trace, metrics
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.psycopg2 import Psycopg2Instrumentor
from loguru import logger

from app.core.config import get_settings

SERVICE_NAME = "missionboard-api"


def telemetry_resource() -> Resource:
    """OpenTelemetry resource shared by traces, metrics and logs."""
    return Resource.create(
        {
            "service.name": os.getenv("OTEL_SERVICE_NAME", SERVICE_NAME),
            "deployment.environment": get_settings().ENVIRONMENT,
        }
    )


def otlp_insecure() -> bool:
    return os.getenv("OTEL_EXPORTER_OTLP_INSECURE", "false").lower() == "true"


def setup_telemetry(app: FastAPI):
    """
    Initialize OpenTelemetry tracing and metrics when an OTLP endpoint is configured.

    Registers tracer and meter providers with OTLP exporters, then instruments the
    FastAPI app, SQLAlchemy and Psycopg2 once per process. Without
    OTEL_EXPORTER_OTLP_ENDPOINT telemetry stays disabled; setup failures are
    logged but not raised.

    Parameters:
        app (FastAPI): FastAPI application to instrument (excludes /health).
    """
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if not endpoint:
        logger.info("No OTLP endpoint configured, telemetry disabled")
        return
    try:
        resource = telemetry_resource()
        insecure = otlp_insecure()

        tracer_provider = TracerProvider(resource=resource)
        span_exporter = OTLPSpanExporter(endpoint=endpoint, insecure=insecure)
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
        trace.set_tracer_provider(tracer_provider)

        metric_reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=endpoint, insecure=insecure)
        )
        metrics.set_meter_provider(
            MeterProvider(resource=resource, metric_readers=[metric_reader])
        )

        if not getattr(setup_telemetry, "_instrumented", False):
            FastAPIInstrumentor.instrument_app(app, excluded_urls="/health")
            SQLAlchemyInstrumentor().instrument(enable_commenter=True)  # type: ignore
            Psycopg2Instrumentor().instrument(  # type: ignore
                enable_commenter=True, skip_dep_check=True
            )
            setup_telemetry._instrumented = True  # type: ignore

        logger.info(f"Traces and metrics exported to {endpoint}")

    except Exception:
        logger.exception("Telemetry setup failed")
