# vitalswatch/main.py

import sys
import signal
import asyncio

from vitalswatch.clients.vitals import VitalsClient
from vitalswatch.core.config import Config
from vitalswatch.core.exceptions import ConfigurationError
from vitalswatch.core.registry import ServerRegistry
from vitalswatch.services.poller.poller_metrics import PollerMetrics
from vitalswatch.services.poller.service import PollingService
from vitalswatch.storage.influx import InfluxSink
from vitalswatch.utils.logger import LoggerSetup

logger = LoggerSetup.setup(__name__)

# Seconds between status reports in the log
STATUS_REPORT_INTERVAL = 3600


def print_config(config: Config) -> None:
    """Show the resolved configuration; the token is never printed"""
    print("InfluxDB Organization:", config.influx.org)
    print("InfluxDB Bucket:", config.influx.bucket)
    print("InfluxDB URL:", config.influx.url)
    print("Polling Interval (minutes):", config.polling.interval_minutes)


async def run(config: Config, registry: ServerRegistry) -> None:
    """Wire the components together and poll until SIGINT/SIGTERM"""
    metrics = PollerMetrics()
    sink = await InfluxSink.open(config.influx)
    service: PollingService | None = None

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    signals: list[signal.Signals] = []

    try:
        if config.logging.metrics_port:
            metrics.serve(config.logging.metrics_port)
            logger.info(f"Serving Prometheus metrics on port {config.logging.metrics_port}")

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
                signals.append(sig)
            except NotImplementedError:
                # Signal handlers are unavailable on Windows event loops
                pass

        service = PollingService(
            registry=registry,
            fetcher=VitalsClient(request_timeout=config.polling.request_timeout),
            sink=sink,
            config=config.polling,
            metrics=metrics
        )
        await service.start()

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=STATUS_REPORT_INTERVAL)
            except asyncio.TimeoutError:
                logger.info("\n" + service.get_service_status())
        logger.info("Shutdown requested")

    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)

        # The service closes the sink once it exists
        if service is not None:
            await service.stop()
        else:
            await sink.close()


def main() -> None:
    """Application entry point"""
    try:
        config = Config()
        LoggerSetup.configure(config.logging.directory, config.logging.level)
        print_config(config)
        registry = ServerRegistry.load(config.polling.servers_file)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        asyncio.run(run(config, registry))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
