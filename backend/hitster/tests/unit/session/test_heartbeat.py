import asyncio

from hitster.session.connections import ConnectionRegistry
from hitster.session.heartbeat import HeartbeatMonitor
from hitster.tests.mocks import MockConnection


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def _monitor(*connection_ids: str) -> tuple[HeartbeatMonitor, FakeMonotonic, dict[str, MockConnection]]:
    registry = ConnectionRegistry()
    clock = FakeMonotonic()
    monitor = HeartbeatMonitor(registry, timeout=30, check_interval=5, clock=clock)
    connections = {}
    for cid in connection_ids:
        connections[cid] = MockConnection(cid)
        registry.add(connections[cid])
        monitor.record_connect(cid)
    return monitor, clock, connections


class TestHeartbeatMonitor:
    def test_fresh_connection_not_stale(self):
        monitor, _, _ = _monitor("a")
        assert monitor.is_stale("a") is False

    def test_stale_after_timeout(self):
        monitor, clock, _ = _monitor("a")
        clock.value += 31
        assert monitor.is_stale("a") is True

    def test_ping_resets_timer(self):
        monitor, clock, _ = _monitor("a")
        clock.value += 25
        monitor.record_ping("a")
        clock.value += 25
        assert monitor.is_stale("a") is False

    def test_ping_for_untracked_connection_ignored(self):
        monitor, _, _ = _monitor()
        monitor.record_ping("ghost")
        assert monitor.is_stale("ghost") is False

    async def test_check_once_closes_stale_connections(self):
        monitor, clock, connections = _monitor("a", "b")
        clock.value += 20
        monitor.record_ping("b")
        clock.value += 20

        assert await monitor.check_once() == ["a"]
        assert connections["a"].is_closed
        assert connections["a"].close_reason == "heartbeat_timeout"
        assert not connections["b"].is_closed
        # already forgotten, so the next check does not close it again
        assert await monitor.check_once() == []

    async def test_disconnect_forgets_connection(self):
        monitor, clock, _ = _monitor("a")
        monitor.record_disconnect("a")
        clock.value += 100
        assert await monitor.check_once() == []

    async def test_start_and_stop(self):
        monitor, _, _ = _monitor()
        monitor.start()
        monitor.start()
        await asyncio.sleep(0)
        await monitor.stop()
        await monitor.stop()
