from typing import AsyncIterator, Protocol

from .exceptions import WriteError
from .models import MetricPoint


class Service(Protocol):
    """
    Base protocol for long-running services.

    Features:
    - Service lifecycle (start/stop)
    - Status reporting
    """
    async def start(self) -> None:
        """
        Start the service.

        Each service must implement its startup logic:
        - Initialize resources
        - Start background tasks
        """
        ...

    async def stop(self) -> None:
        """
        Stop the service.

        Each service must implement its cleanup logic:
        - Cancel background tasks
        - Flush and close connections
        """
        ...

    def get_service_status(self) -> str:
        """
        Generate detailed service status report.

        Returns:
            str: Multi-line status report
        """
        ...


class MetricsSink(Protocol):
    """
    Write path into the time-series store.

    `write` is fire-and-forget and must never block or raise; delivery
    failures are reported later through `errors`.
    """

    def write(self, point: MetricPoint) -> None:
        """Queue a point for asynchronous delivery"""
        ...

    def errors(self) -> AsyncIterator[WriteError]:
        """Stream of delivery failures, ending once the sink is closed"""
        ...

    async def close(self) -> None:
        """Deliver everything buffered, then release the connection"""
        ...
