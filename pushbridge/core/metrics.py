"""
Prometheus Metrics Registry

Provides Prometheus-compatible metrics for:
- Per-endpoint delivery outcomes by gateway and unified status
- Batches sent per gateway
- Transport failures (no response obtained)
- Push duration
"""
import logging
from prometheus_client import (
    Counter, Histogram,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

logger = logging.getLogger(__name__)

# Create a custom registry to avoid conflicts with the host application's registry
REGISTRY = CollectorRegistry()

# ============================================================================
# Push Delivery Metrics
# ============================================================================

push_deliveries_total = Counter(
    'push_deliveries_total',
    'Endpoint delivery outcomes',
    ['gateway', 'status'],
    registry=REGISTRY
)

push_batches_total = Counter(
    'push_batches_total',
    'Wire requests sent to a gateway',
    ['gateway'],
    registry=REGISTRY
)

push_transport_errors_total = Counter(
    'push_transport_errors_total',
    'Requests that produced no gateway response',
    ['gateway', 'kind'],
    registry=REGISTRY
)

push_duration_seconds = Histogram(
    'push_duration_seconds',
    'Duration of one push() call in seconds',
    ['gateway'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 30.0, 60.0],
    registry=REGISTRY
)


def record_push_deliveries(gateway: str, summary: dict, duration_seconds: float = 0.0):
    """
    Record the outcome of one push() call.

    Args:
        gateway: Gateway name (fcm, apns, ...)
        summary: Mapping of status value to endpoint count
        duration_seconds: Wall time of the push
    """
    for status, count in summary.items():
        if count:
            push_deliveries_total.labels(gateway=gateway, status=status).inc(count)
    push_duration_seconds.labels(gateway=gateway).observe(duration_seconds)


def record_batch_sent(gateway: str):
    """Record one wire request to a gateway."""
    push_batches_total.labels(gateway=gateway).inc()


def record_transport_error(gateway: str, kind: str):
    """Record a transport failure (connect error, timeout)."""
    push_transport_errors_total.labels(gateway=gateway, kind=kind).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output in text exposition format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
