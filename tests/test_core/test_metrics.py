"""
Tests for Prometheus metrics.
"""
from pushbridge.core.metrics import (
    REGISTRY,
    get_content_type,
    get_metrics,
    record_batch_sent,
    record_push_deliveries,
    record_transport_error,
)


def sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestRecordPushDeliveries:
    """Tests for per-status delivery counters."""

    def test_counts_each_status(self):
        before_success = sample("push_deliveries_total", {"gateway": "TEST", "status": "success"})
        before_error = sample("push_deliveries_total", {"gateway": "TEST", "status": "error"})

        record_push_deliveries("TEST", {"success": 3, "error": 1, "unknown": 0}, 0.2)

        assert sample("push_deliveries_total", {"gateway": "TEST", "status": "success"}) == before_success + 3
        assert sample("push_deliveries_total", {"gateway": "TEST", "status": "error"}) == before_error + 1

    def test_observes_duration(self):
        before = sample("push_duration_seconds_count", {"gateway": "TEST-DURATION"})

        record_push_deliveries("TEST-DURATION", {}, 1.5)

        assert sample("push_duration_seconds_count", {"gateway": "TEST-DURATION"}) == before + 1


class TestBatchAndTransportCounters:
    """Tests for batch and transport error counters."""

    def test_record_batch_sent(self):
        before = sample("push_batches_total", {"gateway": "TEST"})

        record_batch_sent("TEST")
        record_batch_sent("TEST")

        assert sample("push_batches_total", {"gateway": "TEST"}) == before + 2

    def test_record_transport_error(self):
        labels = {"gateway": "TEST", "kind": "timeout"}
        before = sample("push_transport_errors_total", labels)

        record_transport_error("TEST", "timeout")

        assert sample("push_transport_errors_total", labels) == before + 1


class TestExposition:
    """Tests for metrics rendering."""

    def test_get_metrics_renders_registry(self):
        record_batch_sent("TEST")

        output = get_metrics().decode()

        assert "push_batches_total" in output

    def test_content_type(self):
        assert get_content_type().startswith("text/plain")
