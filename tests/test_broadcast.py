import asyncio
import unittest

from servicebay.core.broadcast import SERVICE_UPDATE, NullBroadcaster, WebSocketBroadcaster


class FakeSocket:
    def __init__(self):
        self.received = []

    async def send_json(self, data):
        self.received.append(data)


class BrokenSocket:
    async def send_json(self, data):
        raise RuntimeError("connection reset")


class StalledSocket:
    """Never finishes a send, like a peer that has stopped reading."""

    async def send_json(self, data):
        await asyncio.Event().wait()


class UnsubscribingSocket(FakeSocket):
    """Disconnects another subscriber while a message is being delivered."""

    def __init__(self, broadcaster, other):
        super().__init__()
        self.broadcaster = broadcaster
        self.other = other

    async def send_json(self, data):
        self.broadcaster.unsubscribe(self.other)
        await super().send_json(data)


class TestWebSocketBroadcaster(unittest.IsolatedAsyncioTestCase):

    async def test_publish_reaches_every_subscriber(self):
        broadcaster = WebSocketBroadcaster()
        first, second = FakeSocket(), FakeSocket()
        broadcaster.subscribe(first)
        broadcaster.subscribe(second)

        broadcaster.publish(SERVICE_UPDATE, {"id": "abc", "status": "pending"})
        await broadcaster.drain()

        expected = [{"event": "serviceUpdate", "data": {"id": "abc", "status": "pending"}}]
        self.assertEqual(first.received, expected)
        self.assertEqual(second.received, expected)

    async def test_broken_subscriber_is_dropped_without_error(self):
        broadcaster = WebSocketBroadcaster()
        healthy = FakeSocket()
        broadcaster.subscribe(BrokenSocket())
        broadcaster.subscribe(healthy)

        broadcaster.publish(SERVICE_UPDATE, {"id": "1"})
        await broadcaster.drain()

        self.assertEqual(len(healthy.received), 1)
        self.assertEqual(broadcaster.subscriber_count, 1)

    async def test_stalled_subscriber_does_not_hold_up_others(self):
        broadcaster = WebSocketBroadcaster(send_timeout=0.05)
        healthy = FakeSocket()
        broadcaster.subscribe(StalledSocket())
        broadcaster.subscribe(healthy)

        with self.assertLogs("servicebay.broadcast", level="WARNING"):
            for n in range(3):
                broadcaster.publish(SERVICE_UPDATE, {"id": str(n)})
            await asyncio.wait_for(broadcaster.drain(), timeout=2)

        self.assertEqual([m["data"]["id"] for m in healthy.received], ["0", "1", "2"])
        self.assertEqual(broadcaster.subscriber_count, 1)

    async def test_messages_arrive_in_publish_order(self):
        broadcaster = WebSocketBroadcaster()
        socket = FakeSocket()
        broadcaster.subscribe(socket)

        for status in ("pending", "in-progress", "ready-for-pickup"):
            broadcaster.publish(SERVICE_UPDATE, {"status": status})
        await broadcaster.drain()

        self.assertEqual(
            [m["data"]["status"] for m in socket.received],
            ["pending", "in-progress", "ready-for-pickup"],
        )

    async def test_subscriber_set_may_change_during_delivery(self):
        broadcaster = WebSocketBroadcaster()
        other = FakeSocket()
        broadcaster.subscribe(UnsubscribingSocket(broadcaster, other))
        broadcaster.subscribe(other)

        broadcaster.publish(SERVICE_UPDATE, {"id": "1"})
        await broadcaster.drain()

        self.assertEqual(broadcaster.subscriber_count, 1)

    async def test_publish_with_no_subscribers_is_harmless(self):
        broadcaster = WebSocketBroadcaster()

        broadcaster.publish(SERVICE_UPDATE, {"id": "1"})
        await broadcaster.drain()

        self.assertEqual(broadcaster.subscriber_count, 0)


class TestPublishOutsideEventLoop(unittest.TestCase):

    def test_publish_without_running_loop_is_ignored(self):
        WebSocketBroadcaster().publish(SERVICE_UPDATE, {"id": "1"})

    def test_null_broadcaster_discards(self):
        NullBroadcaster().publish(SERVICE_UPDATE, {"id": "1"})


if __name__ == "__main__":
    unittest.main()
