"""Tests for the health check HTTP server."""

from aiohttp import ClientSession
from aiohttp.test_utils import TestClient, TestServer

from pulse_bot.api.server import HealthServer
from pulse_bot.config import HealthConfig


async def test_health_endpoint_returns_ok(make_queue):
    server = HealthServer(make_queue())

    async with TestClient(TestServer(server.create_app())) as client:
        response = await client.get("/health")

        assert response.status == 200
        assert await response.text() == "OK"


async def test_unknown_path_returns_404(make_queue):
    server = HealthServer(make_queue())

    async with TestClient(TestServer(server.create_app())) as client:
        response = await client.get("/metrics")

        assert response.status == 404


async def test_status_reports_queue_stats(make_queue):
    queue = make_queue(pacing_interval=0.0)

    async def action():
        return "done"

    await queue.run(action)
    server = HealthServer(queue)

    async with TestClient(TestServer(server.create_app())) as client:
        response = await client.get("/status")
        data = await response.json()

    assert response.status == 200
    assert data["status"] == "healthy"
    assert data["queue"]["submitted"] == 1
    assert data["queue"]["succeeded"] == 1
    assert data["uptime_seconds"] >= 0


async def test_status_reports_closed_queue(make_queue):
    queue = make_queue()
    await queue.close()
    server = HealthServer(queue)

    async with TestClient(TestServer(server.create_app())) as client:
        data = await (await client.get("/status")).json()

    assert data["status"] == "closed"


async def test_start_and_stop_serve_on_configured_port(make_queue, unused_tcp_port):
    server = HealthServer(make_queue(), HealthConfig(host="127.0.0.1", port=unused_tcp_port))
    await server.start()
    try:
        async with ClientSession() as session:
            async with session.get(f"http://127.0.0.1:{unused_tcp_port}/health") as response:
                assert response.status == 200
                assert await response.text() == "OK"
    finally:
        await server.stop()
