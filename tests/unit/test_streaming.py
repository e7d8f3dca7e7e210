"""
Tests for the activity log, the snapshot stream and the WebSocket message handler.
"""
import asyncio
import json

import pytest

from cardsim.streaming.activity_log import ActivityLog
from cardsim.streaming.snapshot_stream import BoundedSnapshotStream
from cardsim.streaming.websocket import AsyncWebSocketServer


# =============================================================================
# ACTIVITY LOG
# =============================================================================


class TestActivityLog:

    def test_ring_buffer_evicts_oldest(self):
        log = ActivityLog(maxsize=3)
        for i in range(5):
            log.append(1, 540 + i, f"message {i}")

        assert [r.message for r in log] == ["message 2", "message 3", "message 4"]
        assert log.stats.records_evicted == 2
        assert len(log) == 3

    def test_tail(self):
        log = ActivityLog()
        for i in range(4):
            log.append(1, 540, f"m{i}")
        assert [r.message for r in log.tail(2)] == ["m2", "m3"]
        assert log.tail(0) == ()
        assert len(log.tail(10)) == 4

    def test_since_uses_sequence(self):
        log = ActivityLog(maxsize=2)
        for i in range(4):
            log.append(1, 540, f"m{i}")
        assert [r.sequence for r in log.since(0)] == [2, 3]
        assert [r.message for r in log.since(3)] == ["m3"]

    def test_state_round_trip(self):
        log = ActivityLog(maxsize=5)
        log.append(2, 600, "hello")
        restored = ActivityLog(maxsize=5)
        restored.restore_state(log.export_state())
        assert list(restored) == list(log)
        assert restored.append(2, 610, "next").sequence == 1

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            ActivityLog(maxsize=0)


# =============================================================================
# SNAPSHOT STREAM
# =============================================================================


class TestSnapshotStream:

    def test_subscriber_starts_from_latest(self, engine):
        async def scenario():
            stream = BoundedSnapshotStream(maxsize=4)
            await stream.publish(engine.snapshot)

            subscription = stream.subscribe()
            first = await subscription.__anext__()

            second_snapshot = engine.tick(3)
            await stream.publish(second_snapshot)
            second = await subscription.__anext__()

            await subscription.aclose()
            return first, second, stream

        first, second, stream = asyncio.run(scenario())
        assert first.version == 1
        assert second.version == 2
        assert stream.stats.active_subscribers == 0

    def test_slow_subscriber_drops_oldest(self, engine):
        async def scenario():
            stream = BoundedSnapshotStream(maxsize=2)
            subscription = stream.subscribe()
            await stream.publish(engine.snapshot)
            first = await subscription.__anext__()

            dropped = 0
            for _ in range(5):
                dropped += await stream.publish(engine.tick(3))

            received = [await subscription.__anext__() for _ in range(2)]
            await subscription.aclose()
            return first, dropped, received, stream

        first, dropped, received, stream = asyncio.run(scenario())
        assert first.version == 1
        assert dropped == 3
        assert [s.version for s in received] == [5, 6]
        assert stream.stats.messages_dropped == 3

    def test_close_ends_subscription(self, engine):
        async def scenario():
            stream = BoundedSnapshotStream()
            await stream.publish(engine.snapshot)
            received = []

            async def consume():
                async for snapshot in stream.subscribe():
                    received.append(snapshot.version)

            task = asyncio.create_task(consume())
            await asyncio.sleep(0)
            await stream.close()
            await asyncio.wait_for(task, timeout=1)
            return received, await stream.publish(engine.snapshot)

        received, dropped_after_close = asyncio.run(scenario())
        assert received == [1]
        assert dropped_after_close == 0


# =============================================================================
# WEBSOCKET MESSAGES
# =============================================================================


class TestHandleMessage:

    @staticmethod
    async def _tick_when_queued(engine):
        while engine.pending_commands == 0:
            await asyncio.sleep(0)
        engine.tick(0)

    def test_purchase_command(self, engine):
        server = AsyncWebSocketServer(BoundedSnapshotStream(), engine=engine)

        async def scenario():
            message = {"type": "purchase", "retailer": "Starbucks", "denomination": 10,
                       "quantity": 1, "request_id": "abc"}
            response, _ = await asyncio.gather(
                server.handle_message(message),
                self._tick_when_queued(engine)
            )
            return response

        response = asyncio.run(scenario())
        assert response['type'] == 'command_result'
        assert response['request_id'] == "abc"
        assert response['accepted'] is True
        assert response['version'] == engine.snapshot.version
        assert engine.snapshot.player.cash == 499_200
        json.dumps(response)

    def test_rejected_command_is_reported(self, engine):
        server = AsyncWebSocketServer(BoundedSnapshotStream(), engine=engine)

        async def scenario():
            response, _ = await asyncio.gather(
                server.handle_message({"type": "accept_order", "order_id": 12345}),
                self._tick_when_queued(engine)
            )
            return response

        response = asyncio.run(scenario())
        assert response['accepted'] is False
        assert response['error'] == "unknown_order"

    def test_unknown_type(self, engine):
        server = AsyncWebSocketServer(BoundedSnapshotStream(), engine=engine)
        response = asyncio.run(server.handle_message({"type": "teleport", "request_id": 7}))
        assert response == {'type': 'error', 'request_id': 7, 'message': "Unknown command type: teleport"}
        assert engine.pending_commands == 0

    @pytest.mark.parametrize("message", [
        {"type": "decline_order", "order_id": {"a": 1}},
        {"type": "accept_order", "order_id": [1]},
        {"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": 1.5},
        {"type": "purchase", "retailer": ["Starbucks"], "denomination": 10},
        {"type": {"nested": True}},
    ])
    def test_malformed_fields_never_reach_the_engine(self, engine, message):
        server = AsyncWebSocketServer(BoundedSnapshotStream(), engine=engine)

        response = asyncio.run(server.handle_message({**message, "request_id": 9}))

        assert response['type'] == 'error'
        assert response['request_id'] == 9
        assert engine.pending_commands == 0
        assert server.commands_received == 0

        snapshot = engine.tick(0)
        assert snapshot.player.cash == 500_000
        assert type(snapshot.player.cash) is int

    def test_non_object_message(self, engine):
        server = AsyncWebSocketServer(BoundedSnapshotStream(), engine=engine)
        response = asyncio.run(server.handle_message(["purchase"]))
        assert response['type'] == 'error'

    def test_get_snapshot(self, engine):
        stream = BoundedSnapshotStream()

        async def scenario():
            await stream.publish(engine.snapshot)
            return await AsyncWebSocketServer(stream).handle_message({"type": "get_snapshot"})

        response = asyncio.run(scenario())
        assert response['type'] == 'snapshot'
        assert response['data']['player']['cash'] == 500_000
        json.dumps(response)

    def test_no_engine_attached(self):
        server = AsyncWebSocketServer(BoundedSnapshotStream())
        response = asyncio.run(server.handle_message({"type": "pause"}))
        assert response['type'] == 'error'
