"""WebSocket endpoint streaming order events to dashboards."""

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from src.core.realtime import RealTimeNotifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _receive_pings(websocket: WebSocket) -> None:
    """Answer client pings until the client disconnects."""
    while True:
        raw = await websocket.receive_text()
        try:
            message = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON WebSocket message")
            continue
        if isinstance(message, dict) and message.get("type") == "ping":
            await websocket.send_json({"type": "pong"})


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Send queued notifier messages to the client."""
    while True:
        message = await queue.get()
        await websocket.send_json(message)


@router.websocket("/ws")
async def order_events(websocket: WebSocket) -> None:
    """Stream new_order and order_update events to a connected client.

    Sends connection_established on connect and answers {"type": "ping"}
    with pong. The listener is unsubscribed when the client goes away.
    """
    await websocket.accept()
    notifier: RealTimeNotifier = get_notifier()
    queue = notifier.subscribe()

    tasks: list[asyncio.Task] = []
    try:
        await websocket.send_json(
            {"type": "connection_established", "message": "Connected to order updates"}
        )
        tasks = [
            asyncio.create_task(_receive_pings(websocket)),
            asyncio.create_task(_forward_events(websocket, queue)),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.warning("WebSocket connection closed with error: %s", error)
    except WebSocketDisconnect:
        pass
    finally:
        for task in tasks:
            task.cancel()
        notifier.unsubscribe(queue)
