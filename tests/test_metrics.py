"""Tests for proxy counters."""

from tradeproxy.app.core.metrics import ProxyMetrics


def test_snapshot_counts():
    metrics = ProxyMetrics()
    metrics.record_search()
    metrics.record_search()
    metrics.record_cache("HIT")
    metrics.record_cache("MISS")
    metrics.record_cache("HIT")
    metrics.record_upstream_failure("blocked")

    assert metrics.snapshot() == {
        "searchRequests": 2,
        "cache": {"HIT": 2, "MISS": 1},
        "upstreamFailures": {"blocked": 1},
        "gateWaits": {},
    }


def test_gate_wait_ignores_zero():
    metrics = ProxyMetrics()
    metrics.record_gate_wait("search", 0.0)
    metrics.record_gate_wait("search", 1.5)
    metrics.record_gate_wait("search", 2.0)

    assert metrics.gate_waits == {"search": 2}
    assert metrics.gate_wait_seconds["search"] == 3.5


def test_prometheus_output():
    metrics = ProxyMetrics()
    metrics.record_cache("STALE_BLOCKED")
    metrics.record_gate_wait("fetch", 4.9)

    text = metrics.to_prometheus()

    assert "# TYPE tradeproxy_search_requests_total counter" in text
    assert 'tradeproxy_cache_results_total{status="STALE_BLOCKED"} 1' in text
    assert 'tradeproxy_gate_waits_total{route_class="fetch"} 1' in text
    assert 'tradeproxy_gate_wait_seconds_total{route_class="fetch"} 4.900' in text
    assert text.endswith("\n")
