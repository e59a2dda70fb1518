"""Tests for observer fan-out."""

import asyncio

import pytest

from conftest import BrokenWebSocket, FakeWebSocket, StalledWebSocket
from services.tracker.broadcaster import Broadcaster


@pytest.fixture
def broadcaster(registry) -> Broadcaster:
    hub = Broadcaster(registry.stats, max_queue=4)
    registry.add_listener(hub.on_mutation)
    return hub


@pytest.mark.asyncio
class TestBroadcaster:

    async def test_snapshot_sent_on_connect(self, broadcaster, eventually):
        ws = FakeWebSocket()

        broadcaster.connect(ws)

        await eventually(lambda: len(ws.sent) == 1)
        assert ws.sent[0] == {
            "type": "stats",
            "stats": {"Party A": 1, "Party B": 1, "Party C": 1},
        }

    async def test_mutation_reaches_every_observer(self, broadcaster, registry, eventually):
        observers = [FakeWebSocket() for _ in range(5)]
        for ws in observers:
            broadcaster.connect(ws)

        registry.add("Dana Neri", "Party A", "")

        await eventually(lambda: all(len(ws.sent) == 2 for ws in observers))
        for ws in observers:
            assert ws.sent[-1]["stats"] == {"Party A": 2, "Party B": 1, "Party C": 1}

    async def test_per_observer_order_matches_mutation_order(self, broadcaster, registry, eventually):
        ws = FakeWebSocket()
        broadcaster.connect(ws)
        expected = [registry.stats()]

        for party in ["Party A", "Party B", "Party A"]:
            registry.add("x", party, "")
            expected.append(registry.stats())

        await eventually(lambda: len(ws.sent) == len(expected))
        assert [m["stats"] for m in ws.sent] == expected

    async def test_disconnect_is_idempotent(self, broadcaster, registry, eventually):
        ws = FakeWebSocket()
        session = broadcaster.connect(ws)
        await eventually(lambda: len(ws.sent) == 1)

        await broadcaster.disconnect(session)
        await broadcaster.disconnect(session)
        registry.add("Dana Neri", "Party A", "")

        assert broadcaster.session_count == 0
        assert len(ws.sent) == 1

    async def test_broken_observer_is_dropped_without_affecting_others(
        self, broadcaster, registry, eventually
    ):
        healthy = FakeWebSocket()
        broadcaster.connect(BrokenWebSocket())
        broadcaster.connect(healthy)

        await eventually(lambda: broadcaster.session_count == 1)
        registry.add("Dana Neri", "Party A", "")

        await eventually(lambda: len(healthy.sent) == 2)

    async def test_stalled_observer_does_not_block_others(self, broadcaster, registry, eventually):
        stalled = StalledWebSocket()
        healthy = FakeWebSocket()
        broadcaster.connect(stalled)
        broadcaster.connect(healthy)

        for i in range(10):
            registry.add(f"c{i}", "Party D", "")
            await asyncio.sleep(0)

        await eventually(lambda: len(healthy.sent) == 11)
        assert healthy.sent[-1]["stats"]["Party D"] == 10
        await eventually(lambda: stalled.closed_with == 1013)
        assert broadcaster.session_count == 1

    async def test_reconnect_gets_fresh_snapshot(self, broadcaster, registry, eventually):
        ws = FakeWebSocket()
        session = broadcaster.connect(ws)
        await broadcaster.disconnect(session)
        registry.add("Dana Neri", "Party E", "")

        again = FakeWebSocket()
        broadcaster.connect(again)

        await eventually(lambda: len(again.sent) == 1)
        assert again.sent[0]["stats"]["Party E"] == 1

    async def test_close_disconnects_everyone(self, broadcaster):
        for _ in range(3):
            broadcaster.connect(FakeWebSocket())

        await broadcaster.close()

        assert broadcaster.session_count == 0
