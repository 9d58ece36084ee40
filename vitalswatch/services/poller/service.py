import asyncio

from vitalswatch.clients.vitals import VitalsClient
from vitalswatch.core.config import PollingConfig
from vitalswatch.core.enums import FetchErrorKind, PollOutcome, ServiceStatus
from vitalswatch.core.exceptions import FetchError
from vitalswatch.core.models import MetricPoint, ServerTarget
from vitalswatch.core.protocols import MetricsSink, Service
from vitalswatch.core.registry import ServerRegistry
from vitalswatch.utils.logger import LoggerSetup
from vitalswatch.utils.time import format_time_difference, get_current_timestamp
from .poller_metrics import PollerMetrics


class PollingService(Service):
    """
    Periodically polls every registered server and writes valid vitals to the sink.

    Features:
    - One independent task per target per tick, no waiting between ticks
    - Per-poll failures are logged and never reach the scheduler
    - A target still in flight from an earlier tick is skipped, not stacked
    - Continuous draining of the sink's write-error stream
    """

    def __init__(self,
                 registry: ServerRegistry,
                 fetcher: VitalsClient,
                 sink: MetricsSink,
                 config: PollingConfig,
                 metrics: PollerMetrics | None = None):

        self._registry = registry
        self._fetcher = fetcher
        self._sink = sink
        self._interval = config.interval_seconds

        self.metrics = metrics or PollerMetrics()
        self.metrics.targets.set(len(registry))

        # Service state
        self._status = ServiceStatus.STOPPED
        self._start_time = get_current_timestamp()
        self._poll_task: asyncio.Task | None = None
        self._error_task: asyncio.Task | None = None
        self._running = False

        # Registry position -> task still polling that target
        self._in_flight: dict[int, asyncio.Task] = {}
        self._last_error: FetchError | None = None

        self.logger = LoggerSetup.setup(__class__.__name__)


    async def start(self) -> None:
        """Start draining write errors and polling on the configured interval"""
        try:
            self._status = ServiceStatus.STARTING
            self.logger.info(f"Starting polling service for {len(self._registry)} server(s)")

            if not self._registry:
                self.logger.warning("No servers configured, nothing will be polled")

            self._start_time = get_current_timestamp()
            self._running = True
            self._error_task = asyncio.create_task(self._drain_write_errors(), name="write-errors")
            self._poll_task = asyncio.create_task(self._poll_loop(), name="poll-loop")

            self._status = ServiceStatus.RUNNING
            self.logger.info("Polling service started successfully")

        except Exception as e:
            self._status = ServiceStatus.ERROR
            self.logger.error(f"Failed to start polling service: {e}")
            raise


    async def stop(self) -> None:
        """Stop scheduling, let in-flight polls finish, then flush and close the sink"""
        try:
            self._status = ServiceStatus.STOPPING
            self.logger.info("Stopping polling service")

            # Stop new ticks
            self._running = False
            if self._poll_task:
                self._poll_task.cancel()
                try:
                    await self._poll_task
                except asyncio.CancelledError:
                    pass
                self._poll_task = None

            # In-flight polls are bounded by the request timeout
            if self._in_flight:
                self.logger.info(f"Waiting for {len(self._in_flight)} in-flight poll(s)")
                await asyncio.gather(*self._in_flight.values(), return_exceptions=True)

            await self._fetcher.cleanup()
            await self._sink.close()

            # Error stream ends once the sink is closed
            if self._error_task:
                await self._error_task
                self._error_task = None

            self._status = ServiceStatus.STOPPED
            self.logger.info("Polling service stopped successfully")

        except Exception as e:
            self._status = ServiceStatus.ERROR
            self.logger.error(f"Error stopping polling service: {e}")
            raise


    def dispatch_cycle(self) -> list[asyncio.Task]:
        """
        Start one poll task per target and return without waiting for them.

        Returns:
            list[asyncio.Task]: Tasks started this tick (skipped targets excluded)
        """
        self.metrics.cycles.inc()
        tasks = []

        for index, target in enumerate(self._registry):
            previous = self._in_flight.get(index)
            if previous and not previous.done():
                self.logger.warning(f"Previous poll of {target.name} ({target.url}) still running, skipping this tick")
                self.metrics.polls.labels(outcome=PollOutcome.SKIPPED.value).inc()
                continue

            task = asyncio.create_task(self._poll_target(target), name=f"poll-{target.name}")
            self._in_flight[index] = task
            task.add_done_callback(lambda t, i=index: self._forget(i, t))
            tasks.append(task)

        return tasks

    async def run_cycle(self) -> list[MetricPoint]:
        """
        Dispatch one tick and wait for all of its polls.

        Returns:
            list[MetricPoint]: Points produced this tick
        """
        tasks = self.dispatch_cycle()
        if not tasks:
            return []
        results = await asyncio.gather(*tasks)
        return [point for point in results if point is not None]


    async def _poll_loop(self) -> None:
        """Dispatch a tick, then sleep for the interval"""
        while self._running:
            try:
                self.dispatch_cycle()
            except Exception as e:
                self.logger.error(f"Error dispatching poll cycle: {e}")

            await asyncio.sleep(self._interval)

    async def _poll_target(self, target: ServerTarget) -> MetricPoint | None:
        """Fetch one target and hand a valid point to the sink; never raises"""
        try:
            point = await self._fetcher.fetch(target)
        except FetchError as e:
            self._last_error = e
            self.metrics.polls.labels(outcome=e.kind.value if e.kind else PollOutcome.UNEXPECTED.value).inc()
            self.logger.warning(f"Poll failed: {e}")
            return None
        except Exception as e:
            self.metrics.polls.labels(outcome=PollOutcome.UNEXPECTED.value).inc()
            self.logger.error(f"Unexpected error polling server {target.name} ({target.url}): {e}")
            return None

        self._sink.write(point)
        self.metrics.polls.labels(outcome=PollOutcome.SUCCESS.value).inc()
        self.metrics.points_written.inc()
        self.logger.info(f"Data written for server {target.name}")
        return point

    def _forget(self, index: int, task: asyncio.Task) -> None:
        if self._in_flight.get(index) is task:
            del self._in_flight[index]

    async def _drain_write_errors(self) -> None:
        """Log every asynchronous write failure; they never affect polling"""
        try:
            async for error in self._sink.errors():
                self.metrics.write_errors.inc()
                self.logger.error(f"Write error: {error}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Write error stream failed: {e}")


    def get_service_status(self) -> str:
        """
        Generate detailed service status report.

        Returns:
            str: Multi-line status report including:
                - Service state and uptime
                - Targets and cycles
                - Poll outcomes by kind
                - Write errors
        """
        uptime = format_time_difference(get_current_timestamp() - self._start_time)
        def polls(outcome: str) -> int:
            return self.metrics.value('vitalswatch_polls_total', outcome=outcome)

        status_lines = [
            "Polling Service Status:",
            f"Status: {self._status.value}",
            f"Uptime: {uptime}",
            f"Targets: {len(self._registry)}",
            f"Interval: {self._interval / 60:g}m",
            f"Cycles: {self.metrics.value('vitalswatch_cycles_total')}",
            f"In flight: {len(self._in_flight)}",
            "",
            "Polls:",
            f"  success: {polls(PollOutcome.SUCCESS.value)}",
            f"  skipped: {polls(PollOutcome.SKIPPED.value)}",
        ]

        for outcome in [*(kind.value for kind in FetchErrorKind), PollOutcome.UNEXPECTED.value]:
            if count := polls(outcome):
                status_lines.append(f"  {outcome}: {count}")

        status_lines.extend([
            "",
            f"Points written: {self.metrics.value('vitalswatch_points_written_total')}",
            f"Write errors: {self.metrics.value('vitalswatch_write_errors_total')}",
        ])

        if self._last_error:
            status_lines.append(f"Last poll error: {self._last_error}")

        return "\n".join(status_lines)
