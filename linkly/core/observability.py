"""Observability setup: logging, tracing, metrics, and error tracking."""

import logging
import re
import time
import uuid
from contextvars import ContextVar

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Gauge, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from linkly.core.config import get_settings

settings = get_settings()

# Context variable for request ID (accessible throughout the request lifecycle)
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_LINK_ID_SEGMENT = re.compile(r"^/api/v1/links/\d+")

# Prometheus metrics - HTTP requests
REQUEST_COUNT = Counter(
    "linkly_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_LATENCY = Histogram(
    "linkly_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Prometheus metrics - Links
REDIRECT_COUNT = Counter(
    "linkly_redirects_total",
    "Total short code resolutions",
    ["outcome"],  # found, not_found
)

LINK_OPERATIONS = Counter(
    "linkly_link_operations_total",
    "Total link operations",
    ["operation"],  # create, update, deactivate, reactivate, delete
)

LOGIN_ATTEMPTS = Counter(
    "linkly_login_attempts_total",
    "Admin login attempts",
    ["outcome"],  # success, failure
)

# Prometheus metrics - Click ingestion
CLICK_EVENTS_RECEIVED = Counter(
    "linkly_click_events_received_total",
    "Total visit events accepted into the ingestion queue",
)

CLICK_EVENTS_PROCESSED = Counter(
    "linkly_click_events_processed_total",
    "Total click records persisted",
)

CLICK_EVENTS_FAILED = Counter(
    "linkly_click_events_failed_total",
    "Total click events that failed processing",
    ["reason"],
)

CLICK_EVENTS_DROPPED = Counter(
    "linkly_click_events_dropped_total",
    "Visit events discarded because the ingestion queue was full",
)

CLICK_PROCESSING_LATENCY = Histogram(
    "linkly_click_processing_duration_seconds",
    "Time to enrich and persist a click",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

PENDING_CLICKS = Gauge(
    "linkly_pending_clicks",
    "Visit events waiting in the ingestion queue",
)

# Prometheus metrics - Geolocation
GEO_LOOKUPS = Counter(
    "linkly_geo_lookups_total",
    "IP geolocation lookups",
    ["outcome"],  # hit, miss, private, failure, coalesced
)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_ctx.get()


def normalize_endpoint(path: str) -> str:
    """Collapse path parameters so metric labels stay low-cardinality."""
    if path.startswith("/api/"):
        return _LINK_ID_SEGMENT.sub("/api/v1/links/{id}", path)
    if path in ("/", "/health", "/metrics"):
        return path
    return "/{short_code}"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add a unique request ID to each request.

    The ID is taken from X-Request-ID when present, bound to the structlog
    context and echoed back in the response headers.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests with timing information."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        logger = structlog.get_logger()
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
            client_ip=request.client.host if request.client else None,
        )

        endpoint = normalize_endpoint(request.url.path)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response


def configure_structlog() -> None:
    """Configure structlog for JSON logging with context variables."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=logging.INFO if not settings.debug else logging.DEBUG,
    )


def setup_opentelemetry(app: FastAPI) -> None:
    """Set up OpenTelemetry tracing when an OTLP endpoint is configured."""
    if not settings.otlp_endpoint:
        structlog.get_logger().info("OpenTelemetry disabled (no OTLP endpoint configured)")
        return

    resource = Resource(attributes={SERVICE_NAME: "linkly"})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)

    structlog.get_logger().info(
        "OpenTelemetry configured",
        otlp_endpoint=settings.otlp_endpoint,
    )


def setup_sentry() -> None:
    """Set up Sentry for error tracking."""
    if not settings.sentry_dsn:
        structlog.get_logger().info("Sentry disabled (no DSN configured)")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
        traces_sample_rate=0.1,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        # Visitor IPs and user agents are personal data
        send_default_pii=False,
    )

    structlog.get_logger().info("Sentry configured")


def get_prometheus_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def setup_observability(app: FastAPI) -> None:
    """Configure logging, error tracking and tracing, and mount ``/metrics``."""
    configure_structlog()

    setup_sentry()
    setup_opentelemetry(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=get_prometheus_metrics(),
            media_type="text/plain; charset=utf-8",
        )

    structlog.get_logger().info("Observability setup complete")


# Helper functions to record custom metrics
def record_redirect(outcome: str) -> None:
    REDIRECT_COUNT.labels(outcome=outcome).inc()


def record_link_operation(operation: str) -> None:
    LINK_OPERATIONS.labels(operation=operation).inc()


def record_login_attempt(success: bool) -> None:
    LOGIN_ATTEMPTS.labels(outcome="success" if success else "failure").inc()


def record_click_received() -> None:
    CLICK_EVENTS_RECEIVED.inc()


def record_click_processed(duration: float) -> None:
    CLICK_EVENTS_PROCESSED.inc()
    CLICK_PROCESSING_LATENCY.observe(duration)


def record_click_failed(reason: str) -> None:
    CLICK_EVENTS_FAILED.labels(reason=reason).inc()


def record_click_dropped() -> None:
    CLICK_EVENTS_DROPPED.inc()


def set_pending_clicks(count: int) -> None:
    PENDING_CLICKS.set(count)


def record_geo_lookup(outcome: str) -> None:
    GEO_LOOKUPS.labels(outcome=outcome).inc()
