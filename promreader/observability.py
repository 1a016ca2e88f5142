"""Read pipeline observability.

The pipeline reports each request outcome to a ``ReadObserver`` handed to it
at construction time. ``PrometheusObserver`` records the observations with
``prometheus_client`` on a caller-supplied registry.
"""

from abc import ABC, abstractmethod

from prometheus_client import CollectorRegistry, Counter, Histogram

OUTCOMES = ("success", "client_error", "upstream_error", "encoding_error")


class ReadObserver(ABC):
    """Receives one observation per remote read request."""

    @abstractmethod
    def observe_request(
        self,
        outcome: str,
        duration_seconds: float,
        series: int = 0,
        samples: int = 0,
    ) -> None:
        """Record a finished request.

        Args:
            outcome: One of ``OUTCOMES``
            duration_seconds: Time spent in the pipeline
            series: Number of series returned (success only)
            samples: Number of samples returned (success only)
        """


class NullObserver(ReadObserver):
    """Observer that discards everything."""

    def observe_request(
        self,
        outcome: str,
        duration_seconds: float,
        series: int = 0,
        samples: int = 0,
    ) -> None:
        return None


class PrometheusObserver(ReadObserver):
    """Observer backed by prometheus_client metrics.

    Example:
        registry = CollectorRegistry()
        observer = PrometheusObserver(registry)
        handler = RemoteReadHandler(reader, observer=observer)
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            "promreader_read_requests_total",
            "Remote read requests by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.duration = Histogram(
            "promreader_read_duration_seconds",
            "Time spent serving remote read requests",
            registry=self.registry,
        )
        self.series_returned = Histogram(
            "promreader_read_series_returned",
            "Time series returned per successful request",
            buckets=(0, 1, 10, 100, 1000, 10000, float("inf")),
            registry=self.registry,
        )
        self.samples_returned = Histogram(
            "promreader_read_samples_returned",
            "Samples returned per successful request",
            buckets=(0, 10, 100, 1000, 10000, 100000, 1000000, float("inf")),
            registry=self.registry,
        )

        for outcome in OUTCOMES:
            self.requests.labels(outcome=outcome)

    def observe_request(
        self,
        outcome: str,
        duration_seconds: float,
        series: int = 0,
        samples: int = 0,
    ) -> None:
        self.requests.labels(outcome=outcome).inc()
        self.duration.observe(duration_seconds)
        if outcome == "success":
            self.series_returned.observe(series)
            self.samples_returned.observe(samples)
