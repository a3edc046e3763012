"""Real-time order event broadcasting.

The notifier owns a broadcast topic. Listeners (WebSocket connections)
subscribe and receive a bounded queue; publishers only ever call publish and
never see who is listening. Delivery is at-most-once: a listener whose queue
is full misses the message, and nothing is persisted or replayed.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from src.core.config import get_settings
from src.core.database import serialize_document

logger = logging.getLogger(__name__)

EVENT_NEW_ORDER = "new_order"
EVENT_ORDER_UPDATE = "order_update"


class RealTimeNotifier:
    """Broadcast topic for order lifecycle events."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        """Number of currently connected listeners."""
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        """Register a listener and return its message queue."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.info("Real-time listener connected (%d active)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Remove a listener. Unknown queues are ignored."""
        self._subscribers.discard(queue)
        logger.info("Real-time listener disconnected (%d active)", len(self._subscribers))

    def publish(self, event_type: str, data: Any = None) -> int:
        """Broadcast a message to every connected listener.

        Never blocks. Listeners whose queue is full skip this message.

        Args:
            event_type: Message type, e.g. "new_order".
            data: JSON-serializable payload.

        Returns:
            int: Number of listeners the message was queued for.
        """
        message = {
            "type": event_type,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Real-time listener queue full, dropping %s event", event_type)

        return delivered

    def emit_new_order(self, order: dict[str, Any]) -> int:
        """Announce a newly placed order."""
        return self.publish(EVENT_NEW_ORDER, serialize_document(order))

    def emit_order_update(self, order: dict[str, Any]) -> int:
        """Announce a change to an existing order."""
        return self.publish(EVENT_ORDER_UPDATE, serialize_document(order))


# Global singleton instance
_notifier: RealTimeNotifier | None = None


def get_notifier() -> RealTimeNotifier:
    """Get or create the global notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = RealTimeNotifier(queue_size=get_settings().realtime_queue_size)
    return _notifier
