"""In-process counters for the proxy."""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ProxyMetrics:
    """Counters for searches, cache outcomes, upstream failures and gate waits.

    Updates happen on the event loop without awaiting, so no lock is needed.
    """

    search_requests: int = 0
    cache_results: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    upstream_failures: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    gate_waits: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    gate_wait_seconds: Dict[str, float] = field(default_factory=lambda: defaultdict(float))
    start_time: float = field(default_factory=time.time)

    def record_search(self) -> None:
        self.search_requests += 1

    def record_cache(self, status: str) -> None:
        self.cache_results[status] += 1

    def record_upstream_failure(self, kind: str) -> None:
        """Count an upstream failure by class (rejected, blocked, unreachable)."""
        self.upstream_failures[kind] += 1

    def record_gate_wait(self, route_class: str, waited: float) -> None:
        if waited <= 0:
            return
        self.gate_waits[route_class] += 1
        self.gate_wait_seconds[route_class] += waited

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def snapshot(self) -> Dict[str, Any]:
        return {
            "searchRequests": self.search_requests,
            "cache": dict(self.cache_results),
            "upstreamFailures": dict(self.upstream_failures),
            "gateWaits": dict(self.gate_waits),
        }

    def to_prometheus(self) -> str:
        """Render counters in Prometheus text exposition format."""
        lines = [
            "# HELP tradeproxy_search_requests_total Search requests received",
            "# TYPE tradeproxy_search_requests_total counter",
            f"tradeproxy_search_requests_total {self.search_requests}",
            "# HELP tradeproxy_cache_results_total Cache lookups by outcome",
            "# TYPE tradeproxy_cache_results_total counter",
        ]
        for status, count in sorted(self.cache_results.items()):
            lines.append(f'tradeproxy_cache_results_total{{status="{status}"}} {count}')
        lines += [
            "# HELP tradeproxy_upstream_failures_total Upstream failures by class",
            "# TYPE tradeproxy_upstream_failures_total counter",
        ]
        for kind, count in sorted(self.upstream_failures.items()):
            lines.append(f'tradeproxy_upstream_failures_total{{kind="{kind}"}} {count}')
        lines += [
            "# HELP tradeproxy_gate_waits_total Requests delayed by the rate gate",
            "# TYPE tradeproxy_gate_waits_total counter",
        ]
        for route_class, count in sorted(self.gate_waits.items()):
            lines.append(f'tradeproxy_gate_waits_total{{route_class="{route_class}"}} {count}')
        lines += [
            "# HELP tradeproxy_gate_wait_seconds_total Time spent waiting in the rate gate",
            "# TYPE tradeproxy_gate_wait_seconds_total counter",
        ]
        for route_class, seconds in sorted(self.gate_wait_seconds.items()):
            lines.append(
                f'tradeproxy_gate_wait_seconds_total{{route_class="{route_class}"}} {seconds:.3f}'
            )
        lines += [
            "# HELP tradeproxy_uptime_seconds Process uptime",
            "# TYPE tradeproxy_uptime_seconds gauge",
            f"tradeproxy_uptime_seconds {self.uptime_seconds:.0f}",
        ]
        return "\n".join(lines) + "\n"
