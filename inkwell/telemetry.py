"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics for page serving, regeneration, store traffic and
    comment submissions

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from prometheus_client import Counter, Histogram

from inkwell.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
PAGE_REQUESTS_TOTAL = Counter(
    "page_requests_total",
    "Page requests served, by page and snapshot state",
    ["page", "state"],  # page: 'list' | 'detail'
)

PAGE_RENDER_SECONDS = Histogram(
    "page_render_seconds",
    "Time spent fetching content and rendering a page",
    ["page"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

SNAPSHOT_REBUILDS_TOTAL = Counter(
    "snapshot_rebuilds_total",
    "Detail snapshot builds, by trigger and outcome",
    ["trigger", "outcome"],  # trigger: 'on_demand' | 'background' | 'prerender'
)

STORE_QUERIES_TOTAL = Counter(
    "store_queries_total",
    "Requests issued to the content store",
    ["kind", "outcome"],  # kind: 'query' | 'mutate'
)

COMMENT_SUBMISSIONS_TOTAL = Counter(
    "comment_submissions_total",
    "Comment submissions, by outcome",
    ["outcome"],  # 'pending' | 'failed' | 'invalid'
)


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    if settings.otel_exporter_otlp_endpoint:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=True,
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(
                "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
            )
        except Exception as exc:
            logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)

    trace.set_tracer_provider(provider)

    # Store traffic goes through httpx; shared snapshots through redis
    HTTPXClientInstrumentor().instrument()
    RedisInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    FastAPIInstrumentor.instrument_app(app)
