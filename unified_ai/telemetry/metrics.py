"""
Unified AI - In-memory Metrics

Per-provider counters aggregated from telemetry events.
"""

from dataclasses import dataclass, field
from typing import Any

from .handler import ErrorTelemetry, RequestTelemetry, ResponseTelemetry, TelemetryHandler


@dataclass
class ProviderMetrics:
    """Aggregated counters for one provider."""

    total_requests: int = 0
    successful_requests: int = 0
    error_count: int = 0
    cache_hits: int = 0
    total_tokens: int = 0
    latencies_ms: list[float] = field(default_factory=list)

    @property
    def average_latency_ms(self) -> float:
        if not self.latencies_ms:
            return 0.0
        return sum(self.latencies_ms) / len(self.latencies_ms)

    @property
    def min_latency_ms(self) -> float:
        return min(self.latencies_ms) if self.latencies_ms else 0.0

    @property
    def max_latency_ms(self) -> float:
        return max(self.latencies_ms) if self.latencies_ms else 0.0

    @property
    def error_rate(self) -> float:
        """Errors as a percentage of started requests."""
        if self.total_requests == 0:
            return 0.0
        return self.error_count / self.total_requests * 100.0

    @property
    def cache_hit_rate(self) -> float:
        if self.successful_requests == 0:
            return 0.0
        return self.cache_hits / self.successful_requests * 100.0

    @property
    def average_tokens_per_request(self) -> float:
        if self.successful_requests == 0:
            return 0.0
        return self.total_tokens / self.successful_requests

    def merge(self, other: "ProviderMetrics") -> None:
        self.total_requests += other.total_requests
        self.successful_requests += other.successful_requests
        self.error_count += other.error_count
        self.cache_hits += other.cache_hits
        self.total_tokens += other.total_tokens
        self.latencies_ms.extend(other.latencies_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "error_count": self.error_count,
            "cache_hits": self.cache_hits,
            "total_tokens": self.total_tokens,
            "average_latency_ms": round(self.average_latency_ms, 2),
            "min_latency_ms": round(self.min_latency_ms, 2),
            "max_latency_ms": round(self.max_latency_ms, 2),
            "error_rate": round(self.error_rate, 2),
            "cache_hit_rate": round(self.cache_hit_rate, 2),
        }


class MetricsCollector(TelemetryHandler):
    """Telemetry handler that aggregates metrics per provider."""

    def __init__(self) -> None:
        self._metrics: dict[str, ProviderMetrics] = {}
        self._request_providers: dict[str, str] = {}

    def get_metrics(self, provider: str) -> ProviderMetrics:
        return self._metrics.get(provider) or ProviderMetrics()

    def get_all_metrics(self) -> ProviderMetrics:
        combined = ProviderMetrics()
        for metrics in self._metrics.values():
            combined.merge(metrics)
        return combined

    @property
    def providers(self) -> list[str]:
        return list(self._metrics)

    def clear(self, provider: str | None = None) -> None:
        if provider is None:
            self._metrics.clear()
            self._request_providers.clear()
        else:
            self._metrics.pop(provider, None)

    async def on_request(self, event: RequestTelemetry) -> None:
        self._request_providers[event.request_id] = event.provider
        self._metrics.setdefault(event.provider, ProviderMetrics()).total_requests += 1

    async def on_response(self, event: ResponseTelemetry) -> None:
        provider = self._request_providers.pop(event.request_id, None)
        if provider is None:
            return
        metrics = self._metrics.setdefault(provider, ProviderMetrics())
        metrics.successful_requests += 1
        metrics.latencies_ms.append(event.latency_ms)
        if event.tokens_used is not None:
            metrics.total_tokens += event.tokens_used
        if event.cached:
            metrics.cache_hits += 1

    async def on_error(self, event: ErrorTelemetry) -> None:
        provider = event.provider or self._request_providers.get(event.request_id)
        self._request_providers.pop(event.request_id, None)
        if provider is not None:
            self._metrics.setdefault(provider, ProviderMetrics()).error_count += 1
