import asyncio
from typing import AsyncIterator

from influxdb_client import Point, WritePrecision
from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync

from vitalswatch.core.config import InfluxConfig
from vitalswatch.core.exceptions import WriteError
from vitalswatch.core.models import MetricPoint
from vitalswatch.utils.logger import LoggerSetup


class InfluxSink:
    """
    Non-blocking write path into InfluxDB.

    Points are buffered in a bounded queue and delivered by a single writer
    task. When the buffer is full the oldest point is dropped. Every failed
    or dropped point is reported on the error stream, never to the writer.
    """

    def __init__(self, config: InfluxConfig, client: InfluxDBClientAsync):
        self._config = config
        self._client = client
        self._write_api = client.write_api()

        self._queue: asyncio.Queue[MetricPoint] = asyncio.Queue(maxsize=config.queue_size)
        self._errors: asyncio.Queue[WriteError | None] = asyncio.Queue()
        self._writer_task: asyncio.Task | None = None
        self._closed = False

        # Counters for status reporting
        self.written = 0
        self.failed = 0
        self.dropped = 0

        self.logger = LoggerSetup.setup(__class__.__name__)

    @classmethod
    async def open(cls, config: InfluxConfig) -> 'InfluxSink':
        """
        Connect to InfluxDB and start the writer task.

        Must be awaited inside the running event loop that will use the sink.
        """
        client = InfluxDBClientAsync(url=config.url, token=config.token, org=config.org)
        sink = cls(config, client)
        sink.start()
        return sink

    def start(self) -> None:
        """Start the writer task"""
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._write_loop(), name="influx-writer")
            self.logger.info(f"InfluxDB sink opened: {self._config.url} bucket={self._config.bucket}")

    @property
    def pending(self) -> int:
        """Points buffered but not yet delivered"""
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed


    def write(self, point: MetricPoint) -> None:
        """
        Queue a point for delivery and return immediately.

        Never raises. Overflow is reported as a WriteError, writes after
        close are logged and discarded.
        """
        if self._closed:
            self.logger.warning(f"Sink closed, discarded point for {point.server}")
            return

        if self._queue.full():
            dropped = self._queue.get_nowait()
            self._queue.task_done()
            self.dropped += 1
            self._report(WriteError(
                f"Write queue full ({self._config.queue_size}), dropped oldest point for {dropped.server}",
                dropped
            ))

        self._queue.put_nowait(point)

    async def errors(self) -> AsyncIterator[WriteError]:
        """
        Yield delivery failures as they happen.

        Ends after `close()` once every reported failure has been yielded.
        Intended for a single consumer.
        """
        while True:
            error = await self._errors.get()
            if error is None:
                return
            yield error

    async def close(self) -> None:
        """Deliver all buffered points, stop the writer and close the client"""
        if self._closed:
            return
        self._closed = True

        self.logger.info(f"Closing InfluxDB sink, flushing {self.pending} buffered point(s)")
        if self._writer_task:
            await self._queue.join()
            self._writer_task.cancel()
            try:
                await self._writer_task
            except asyncio.CancelledError:
                pass
            self._writer_task = None

        try:
            await self._client.close()
        finally:
            # End of error stream
            self._errors.put_nowait(None)
            self.logger.info(f"InfluxDB sink closed ({self.written} written, {self.failed} failed, {self.dropped} dropped)")


    async def _write_loop(self) -> None:
        """Deliver queued points one at a time"""
        while True:
            point = await self._queue.get()
            try:
                await self._write_api.write(
                    bucket=self._config.bucket,
                    org=self._config.org,
                    record=self.to_record(point)
                )
                self.written += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failed += 1
                self._report(WriteError(f"Failed to write point for {point.server}: {e}", point, e))
            finally:
                self._queue.task_done()

    def _report(self, error: WriteError) -> None:
        self._errors.put_nowait(error)

    @staticmethod
    def to_record(point: MetricPoint) -> Point:
        """Convert a MetricPoint to an InfluxDB line-protocol point"""
        record = Point(point.measurement)
        for key, value in point.tags.items():
            record = record.tag(key, value)
        for key, value in point.fields.items():
            record = record.field(key, value)
        return record.time(point.timestamp, WritePrecision.NS)
