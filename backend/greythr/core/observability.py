from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import settings

RESOURCE = Resource.create({"service.name": "greythr-api", "deployment.env": settings.env})

tracer = trace.get_tracer("greythr.realtime")
meter = metrics.get_meter("greythr.realtime")
# Created against the proxy meter so instruments bind once a provider is set.
ws_connections = meter.create_up_down_counter(
    "greythr.ws.connections", description="Open real-time connections"
)
chat_messages = meter.create_counter(
    "greythr.chat.messages", description="Chat messages persisted and relayed"
)


def configure_tracing(otlp_endpoint: Optional[str] = None) -> None:
    endpoint = otlp_endpoint or settings.otlp_endpoint
    if not endpoint:
        return
    tracer_provider = TracerProvider(resource=RESOURCE)
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(tracer_provider)


def configure_metrics(otlp_endpoint: Optional[str] = None) -> None:
    endpoint = otlp_endpoint or settings.otlp_endpoint
    if not endpoint:
        return
    metric_reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint))
    metrics.set_meter_provider(MeterProvider(resource=RESOURCE, metric_readers=[metric_reader]))


def configure_observability() -> None:
    configure_tracing()
    configure_metrics()
