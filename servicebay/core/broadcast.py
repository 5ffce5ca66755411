"""
Live fan-out of service record changes.

Publishing never blocks the caller and never raises: each message is handed
to a background task that pushes it to every connected subscriber, dropping
any subscriber whose connection has gone away.
"""
import asyncio
import logging
from typing import Any, Dict, Protocol, Set

logger = logging.getLogger("servicebay.broadcast")

SERVICE_UPDATE = "serviceUpdate"
SEND_TIMEOUT = 5.0


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class Broadcaster(Protocol):
    def subscribe(self, subscriber: Subscriber) -> None: ...

    def unsubscribe(self, subscriber: Subscriber) -> None: ...

    def publish(self, topic: str, payload: Dict[str, Any]) -> None: ...


class NullBroadcaster:
    """Accepts and discards every message."""

    def subscribe(self, subscriber: Subscriber) -> None:
        pass

    def unsubscribe(self, subscriber: Subscriber) -> None:
        pass

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        logger.debug("Discarding %s event", topic)


class WebSocketBroadcaster:
    """
    Pushes ``{"event": topic, "data": payload}`` to all connected sockets.

    A subscriber that takes longer than ``send_timeout`` seconds to accept a
    message is dropped like one whose send failed.
    """

    def __init__(self, send_timeout: float = SEND_TIMEOUT):
        self.send_timeout = send_timeout
        self._subscribers: Set[Subscriber] = set()
        self._pending: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)
        logger.info("Subscriber connected (%d live)", len(self._subscribers))

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.discard(subscriber)
            logger.info("Subscriber disconnected (%d live)", len(self._subscribers))

    def publish(self, topic: str, payload: Dict[str, Any]) -> None:
        message = {"event": topic, "data": payload}
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; %s event not delivered", topic)
            return
        task = loop.create_task(self._deliver(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, message: Dict[str, Any]) -> None:
        # The lock keeps messages in publish order for every subscriber
        async with self._lock:
            for subscriber in list(self._subscribers):
                try:
                    await asyncio.wait_for(subscriber.send_json(message), self.send_timeout)
                except asyncio.TimeoutError:
                    logger.warning("Dropping subscriber that did not accept a message within %ss", self.send_timeout)
                    self._subscribers.discard(subscriber)
                except Exception as e:
                    logger.warning("Dropping subscriber after failed send: %s", e)
                    self._subscribers.discard(subscriber)

    async def drain(self) -> None:
        """Wait for every message published so far to be delivered."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
