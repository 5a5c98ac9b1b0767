"""Monitoring and observability setup.

Tracing and metrics are exported over OTLP/gRPC when OTEL_ENABLED is set.
When it is not, the OpenTelemetry API falls back to its no-op providers and
every counter, histogram and span below is still safe to use.

Exemplars:
----------
With the OTLP exporter the SDK attaches exemplars to histogram points
recorded inside an active span, so a spike in order_amount_histogram links
straight to the place_order trace that produced it.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

from config import OTEL_ENABLED, OTEL_EXPORTER_OTLP_ENDPOINT, SERVICE_NAME

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    if OTEL_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        tracer_provider = TracerProvider(resource=resource)
        otlp_span_exporter = OTLPSpanExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
        trace.set_tracer_provider(tracer_provider)

        logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    if OTEL_ENABLED:
        resource = Resource.create({"service.name": SERVICE_NAME})

        otlp_metric_exporter = OTLPMetricExporter(
            endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=True
        )
        otlp_metric_reader = PeriodicExportingMetricReader(
            otlp_metric_exporter,
            export_interval_millis=5000
        )

        meter_provider = MeterProvider(
            resource=resource,
            metric_readers=[otlp_metric_reader]
        )
        metrics.set_meter_provider(meter_provider)

        logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


# Initialize tracer and meter
tracer = init_tracing()
meter = init_metrics()

# Product catalog metrics
product_views_counter = meter.create_counter(
    "storefront.products.views",
    description="Total number of product list and detail views",
    unit="1"
)

product_changes_counter = meter.create_counter(
    "storefront.products.changes",
    description="Catalog mutations by operation (create, update, patch, delete)",
    unit="1"
)

# Order metrics
orders_placed_counter = meter.create_counter(
    "storefront.orders.placed",
    description="Order placement attempts by outcome",
    unit="1"
)

order_amount_histogram = meter.create_histogram(
    "storefront.orders.amount",
    description="Total amount of successfully placed orders",
    unit="USD"
)

stock_rejections_counter = meter.create_counter(
    "storefront.inventory.stock_rejections",
    description="Order lines rejected because stock was insufficient",
    unit="1"
)

# Security monitoring metrics
rate_limit_exceeded_counter = meter.create_counter(
    "storefront.rate_limit.exceeded",
    description="Total number of rate limit violations",
    unit="1"
)

suspicious_activity_counter = meter.create_counter(
    "storefront.security.suspicious_activity",
    description="Total number of suspicious activity detections",
    unit="1"
)
