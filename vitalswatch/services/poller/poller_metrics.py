from prometheus_client import Counter, Gauge, CollectorRegistry, start_http_server


class PollerMetrics:
    """
    Prometheus metrics for the polling service.

    Metrics:
    - Poll outcomes (success, skipped, or the failure kind)
    - Points handed to the sink and asynchronous write failures
    - Number of configured targets
    """

    def __init__(self):
        self.registry = CollectorRegistry()

        self.polls = Counter(
            'vitalswatch_polls_total',
            'Polls by outcome',
            ['outcome'],
            registry=self.registry
        )

        self.points_written = Counter(
            'vitalswatch_points_written_total',
            'Points handed to the sink',
            registry=self.registry
        )

        self.write_errors = Counter(
            'vitalswatch_write_errors_total',
            'Asynchronous write failures reported by the sink',
            registry=self.registry
        )

        self.targets = Gauge(
            'vitalswatch_targets',
            'Number of configured targets',
            registry=self.registry
        )

        self.cycles = Counter(
            'vitalswatch_cycles_total',
            'Scheduler ticks dispatched',
            registry=self.registry
        )

    def serve(self, port: int) -> None:
        """Expose the registry over HTTP on the given port"""
        start_http_server(port, registry=self.registry)

    def value(self, name: str, **labels: str) -> int:
        """Current value of a sample, for status reports and tests"""
        return int(self.registry.get_sample_value(name, labels) or 0)
