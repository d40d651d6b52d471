from __future__ import annotations

import time
from collections.abc import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor


REGISTRY = CollectorRegistry()
ProcessCollector(registry=REGISTRY)
PlatformCollector(registry=REGISTRY)
GCCollector(registry=REGISTRY)

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "HTTP requests by route, method and status class",
    ["service", "route", "method", "status"],
    registry=REGISTRY,
)
REQUEST_LATENCY = Histogram(
    "request_latency_ms",
    "Request latency in milliseconds",
    ["service", "route", "method"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
    registry=REGISTRY,
)

SEEDER_RUNS_TOTAL = Counter(
    "seeder_runs_total",
    "Admin-triggered seeder runs",
    ["command", "outcome"],
    registry=REGISTRY,
)
SEEDER_LATENCY = Histogram(
    "seeder_latency_ms",
    "Seeder run latency in milliseconds",
    ["command"],
    buckets=(100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000),
    registry=REGISTRY,
)


def setup_tracing(app: FastAPI, service_name: str) -> None:
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(provider)
    # Scrapes and probes would drown out real traffic.
    FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics,healthz")


def instrument_sqlalchemy(engine) -> None:
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def _route_label(request: Request) -> str:
    # Templated path keeps ids out of label values.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def add_metrics_middleware(app: FastAPI, service_name: str) -> None:
    @app.middleware("http")
    async def _metrics(request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        status = "5xx"
        try:
            resp = await call_next(request)
            status = f"{resp.status_code // 100}xx"
            return resp
        finally:
            route = _route_label(request)
            REQUEST_LATENCY.labels(service_name, route, request.method).observe((time.perf_counter() - start) * 1000)
            HTTP_REQUESTS_TOTAL.labels(service_name, route, request.method, status).inc()

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
