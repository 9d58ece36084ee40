# tests/storage/test_influx_sink.py
import asyncio
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from vitalswatch.core.config import InfluxConfig
from vitalswatch.core.exceptions import WriteError
from vitalswatch.core.models import MetricPoint
from vitalswatch.storage.influx import InfluxSink


def make_point(server: str = "web-01", cpu: int = 0) -> MetricPoint:
    return MetricPoint(
        tags={"server": server},
        fields={"mem_percent": 46, "disk_percent": 79, "cpu_percent": cpu},
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    )

@pytest.fixture
def influx_config() -> InfluxConfig:
    return InfluxConfig(url="http://influx:8086", org="homelab", bucket="vitals", token="t", queue_size=100)

@pytest.fixture
def mock_client():
    client = MagicMock()
    client.write_api.return_value.write = AsyncMock(return_value=True)
    client.close = AsyncMock()
    return client

@pytest.fixture
def write_mock(mock_client) -> AsyncMock:
    return mock_client.write_api.return_value.write

async def collect_errors(sink: InfluxSink) -> list[WriteError]:
    return [error async for error in sink.errors()]


async def test_close_flushes_buffered_points(influx_config, mock_client, write_mock):
    sink = InfluxSink(influx_config, mock_client)
    sink.start()

    for cpu in range(5):
        sink.write(make_point(cpu=cpu))
    await sink.close()

    assert write_mock.await_count == 5
    assert sink.written == 5
    assert sink.pending == 0
    mock_client.close.assert_awaited_once()

    _, kwargs = write_mock.call_args
    assert kwargs["bucket"] == "vitals"
    assert kwargs["org"] == "homelab"

async def test_write_does_not_block_on_slow_store(influx_config, mock_client, write_mock):
    release = asyncio.Event()

    async def slow_write(**kwargs):
        await release.wait()
        return True

    write_mock.side_effect = slow_write
    sink = InfluxSink(influx_config, mock_client)
    sink.start()

    loop = asyncio.get_running_loop()
    started = loop.time()
    for _ in range(10):
        sink.write(make_point())
    assert loop.time() - started < 0.1

    # Writer holds one point, the rest stay buffered
    await asyncio.sleep(0.01)
    assert sink.pending == 9

    release.set()
    await sink.close()
    assert sink.written == 10

async def test_store_failures_reported_on_error_stream(influx_config, mock_client, write_mock):
    cause = ConnectionRefusedError("connection refused")
    write_mock.side_effect = [True, cause, True]
    sink = InfluxSink(influx_config, mock_client)
    sink.start()

    points = [make_point(server=name) for name in ("a", "b", "c")]
    for point in points:
        sink.write(point)
    await sink.close()

    errors = await collect_errors(sink)
    assert len(errors) == 1
    assert errors[0].point == points[1]
    assert errors[0].cause is cause
    assert "b" in str(errors[0])
    assert sink.written == 2
    assert sink.failed == 1

async def test_full_queue_drops_oldest(influx_config, mock_client, write_mock):
    influx_config.queue_size = 2
    sink = InfluxSink(influx_config, mock_client)

    # Writer not started yet, so nothing drains the queue
    points = [make_point(server=name) for name in ("first", "second", "third")]
    for point in points:
        sink.write(point)

    assert sink.pending == 2
    assert sink.dropped == 1

    sink.start()
    await sink.close()

    written = [call.kwargs["record"].to_line_protocol().split()[0] for call in write_mock.call_args_list]
    assert written == ["server_metrics,server=second", "server_metrics,server=third"]

    errors = await collect_errors(sink)
    assert len(errors) == 1
    assert errors[0].point == points[0]
    assert "queue full" in str(errors[0])

async def test_write_after_close_is_discarded(influx_config, mock_client, write_mock, caplog):
    sink = InfluxSink(influx_config, mock_client)
    sink.start()
    await sink.close()

    sink.write(make_point())

    assert write_mock.await_count == 0
    assert sink.closed
    assert any("Sink closed" in r.message for r in caplog.records)
    assert await collect_errors(sink) == []

async def test_close_is_idempotent(influx_config, mock_client):
    sink = InfluxSink(influx_config, mock_client)
    sink.start()
    await sink.close()
    await sink.close()
    mock_client.close.assert_awaited_once()

async def test_error_stream_ends_on_close(influx_config, mock_client, write_mock):
    write_mock.side_effect = RuntimeError("unauthorized")
    sink = InfluxSink(influx_config, mock_client)
    sink.start()

    consumer = asyncio.create_task(collect_errors(sink))
    sink.write(make_point())
    await sink.close()

    errors = await asyncio.wait_for(consumer, timeout=1)
    assert [str(e.cause) for e in errors] == ["unauthorized"]

async def test_open_creates_client(influx_config):
    with patch("vitalswatch.storage.influx.InfluxDBClientAsync") as client_cls:
        client_cls.return_value.close = AsyncMock()
        sink = await InfluxSink.open(influx_config)

        client_cls.assert_called_once_with(url="http://influx:8086", token="t", org="homelab")
        await sink.close()
        client_cls.return_value.close.assert_awaited_once()

def test_to_record_line_protocol():
    line = InfluxSink.to_record(make_point()).to_line_protocol()

    assert line.startswith("server_metrics,server=web-01 ")
    assert "mem_percent=46i" in line
    assert "disk_percent=79i" in line
    assert "cpu_percent=0i" in line
    assert line.endswith(" 1714564800000000000")
