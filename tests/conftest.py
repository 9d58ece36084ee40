import asyncio
import json
import sys
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from vitalswatch.core.exceptions import WriteError
from vitalswatch.core.models import MetricPoint, ServerTarget


VALID_VITALS = {
    "title": "vitals-glimpse",
    "version": 0.2,
    "mem_status": "mem_okay",
    "mem_percent": 46,
    "disk_status": "disk_okay",
    "disk_percent": 79,
    "cpu_status": "cpu_okay",
    "cpu_percent": 0
}


class FakeSink:
    """In-memory MetricsSink that records points and lets tests inject write errors"""

    def __init__(self):
        self.points: list[MetricPoint] = []
        self.closed = False
        self._errors: asyncio.Queue[WriteError | None] = asyncio.Queue()

    def write(self, point: MetricPoint) -> None:
        self.points.append(point)

    def report(self, error: WriteError) -> None:
        self._errors.put_nowait(error)

    async def errors(self):
        while True:
            error = await self._errors.get()
            if error is None:
                return
            yield error

    async def close(self) -> None:
        self.closed = True
        self._errors.put_nowait(None)


def _json_handler(payload, status=200):
    async def handler(request):
        return web.Response(text=json.dumps(payload), status=status, content_type="application/json")
    return handler


@pytest.fixture
def fake_sink() -> FakeSink:
    return FakeSink()

@pytest.fixture
def valid_vitals() -> dict:
    return dict(VALID_VITALS)

@pytest.fixture
async def vitals_server():
    """
    Local HTTP server standing in for vitals-glimpse endpoints.

    Routes:
        /ok             valid document
        /error-status   valid document with HTTP 500
        /old            version 0.1
        /other          title "other", version 0.5
        /garbage        not JSON
        /missing        cpu_percent absent
        /slow           valid document after a 1s delay
    """
    async def garbage(request):
        return web.Response(text="<html>not json</html>")

    async def slow(request):
        await asyncio.sleep(1)
        return web.json_response(VALID_VITALS)

    app = web.Application()
    app.router.add_get("/ok", _json_handler(VALID_VITALS))
    app.router.add_get("/error-status", _json_handler(VALID_VITALS, status=500))
    app.router.add_get("/old", _json_handler({**VALID_VITALS, "version": 0.1}))
    app.router.add_get("/other", _json_handler({**VALID_VITALS, "title": "other", "version": 0.5}))
    app.router.add_get("/garbage", garbage)
    app.router.add_get("/missing", _json_handler({k: v for k, v in VALID_VITALS.items() if k != "cpu_percent"}))
    app.router.add_get("/slow", slow)

    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()

@pytest.fixture
def target_for(vitals_server):
    """Build a ServerTarget pointing at a route of the local vitals server"""
    def build(route: str, name: str | None = None) -> ServerTarget:
        return ServerTarget(name=name or route.strip("/"), url=str(vitals_server.make_url(route)))
    return build

@pytest.fixture
def unreachable_target() -> ServerTarget:
    """Target on a local port nothing listens on"""
    return ServerTarget(name="down", url=f"http://127.0.0.1:{unused_port()}/vitals")
