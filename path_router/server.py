from typing import Optional, Sequence

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from path_router.app_proxy.executor import ProxyExecutor
from path_router.app_proxy.route import create_router
from path_router.models import RouteTable
from path_router.routing import load_route_table_from_env
from path_router.vars import (
    OTLP_ENDPOINT,
    OTLP_HEADERS,
    ROUTES,
    ROUTES_FILE,
    SERVICE_NAME,
)


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streaming responses.
    Proxied bodies are streamed chunk by chunk, which would otherwise produce
    one span per chunk.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
tracer_provider = trace.get_tracer_provider()
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=OTLP_HEADERS or None,
    )
    tracer_provider.add_span_processor(
        BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
    )


def create_app(
    route_table: Optional[RouteTable] = None,
    executor: Optional[ProxyExecutor] = None,
    instrument: bool = False,
) -> FastAPI:
    """
    Build the router application. Without an explicit table the routes are
    loaded from ``ROUTES`` / ``ROUTES_FILE``.
    """
    if route_table is None:
        route_table = load_route_table_from_env(ROUTES, ROUTES_FILE)

    app = FastAPI(title=SERVICE_NAME)
    if instrument:
        # Registered before the catch-all router so /metrics is not proxied
        Instrumentator().instrument(app).expose(app)
        FastAPIInstrumentor.instrument_app(app)

    app.include_router(create_router(route_table, executor))
    return app


app = create_app(instrument=True)

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})
