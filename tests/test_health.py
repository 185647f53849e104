import aiohttp
import pytest

from scanlink.health import HealthReporter, HealthServer


@pytest.mark.asyncio
async def test_health_reporter_snapshot():
    reporter = HealthReporter()

    await reporter.update("network", True)
    await reporter.update("backend", False, "timeout")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    components = {item["name"]: item for item in snapshot["components"]}
    assert components["network"]["healthy"] is True
    assert components["backend"]["detail"] == "timeout"
    assert "scanState" not in snapshot


@pytest.mark.asyncio
async def test_health_reporter_scan_state_affects_status():
    reporter = HealthReporter()

    await reporter.update("network", True)
    await reporter.set_scan_state("fault_recovery", healthy=False)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    assert snapshot["scanState"]["state"] == "fault_recovery"
    assert snapshot["scanState"]["healthy"] is False


@pytest.mark.asyncio
async def test_health_server_serves_snapshot(unused_tcp_port):
    reporter = HealthReporter()
    await reporter.set_scan_state("idle", healthy=True)

    host = "127.0.0.1"
    server = HealthServer(reporter, host, unused_tcp_port)
    await server.start()

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"http://{host}:{unused_tcp_port}/healthz") as response:
                payload = await response.json()
                assert response.status == 200
                assert payload["status"] == "ok"
                assert payload["scanState"]["state"] == "idle"
    finally:
        await server.stop()


@pytest.mark.asyncio
async def test_health_server_ephemeral_port_reports_degraded():
    reporter = HealthReporter()
    await reporter.update("network", False, "disconnected")

    server = HealthServer(reporter, "127.0.0.1", 0)
    await server.start()

    try:
        assert server.port
        async with aiohttp.ClientSession() as session:
            async with session.get(f"http://127.0.0.1:{server.port}/healthz") as response:
                assert response.status == 503
                assert response.headers["Cache-Control"] == "no-store"
    finally:
        await server.stop()

    assert server.port is None
