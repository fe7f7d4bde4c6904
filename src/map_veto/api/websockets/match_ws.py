"""WebSocket handler pushing a room's committed sessions and events."""

import asyncio
import json
import logging

from fastapi import WebSocket, WebSocketDisconnect

from map_veto.errors import MatchError
from map_veto.models.events import MatchEvent
from map_veto.models.match import MatchSession
from map_veto.services.match_service import MatchService

logger = logging.getLogger(__name__)


async def _send_outgoing(websocket: WebSocket, queue: asyncio.Queue) -> None:
    """Single writer for the socket; drains messages queued by store/bus callbacks.

    A `match_state` no newer than the last one sent is dropped, so the
    client only ever moves forward.
    """
    sent_version = 0
    try:
        while True:
            message = await queue.get()
            if message["type"] == "match_state":
                version = message["session"]["version"]
                if version <= sent_version:
                    continue
                sent_version = version
            await websocket.send_json(message)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Error sending to match websocket: {e}")


async def match_websocket(websocket: WebSocket, room_id: str, service: MatchService):
    """Handle a client watching one room.

    Sends `match_state` on connect and after every committed write, `event`
    for each event of the room, and answers `ping` with `pong`.

    Args:
        websocket: The WebSocket connection
        room_id: Room to watch
        service: MatchService instance
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Store and bus callbacks run on whichever thread committed the write
    def on_session(session: MatchSession) -> None:
        loop.call_soon_threadsafe(
            queue.put_nowait, {"type": "match_state", "session": session.to_dict()}
        )

    def on_event(event: MatchEvent) -> None:
        if event.room_id == room_id:
            loop.call_soon_threadsafe(queue.put_nowait, {"type": "event", "event": event.to_dict()})

    # Subscribe before reading so no commit falls between the read and the feed
    try:
        subscription = service.subscribe(room_id, on_session)
    except MatchError as e:
        await websocket.close(code=4004, reason=e.message)
        return
    unsubscribe = service.event_bus.subscribe(on_event)
    try:
        initial = service.get_session(room_id)
    except MatchError as e:
        subscription.close()
        unsubscribe()
        await websocket.close(code=4004, reason=e.message)
        return

    await websocket.accept()
    await queue.put({"type": "match_state", "session": initial.to_dict()})
    sender_task = asyncio.create_task(_send_outgoing(websocket, queue))
    logger.info(f"Match websocket opened for room {room_id}")

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received: {data}")
                await queue.put({"type": "error", "message": "Invalid JSON"})
                continue

            if isinstance(msg, dict) and msg.get("type") == "ping":
                await queue.put({"type": "pong"})
    except WebSocketDisconnect:
        logger.info(f"Match websocket closed for room {room_id}")
    finally:
        subscription.close()
        unsubscribe()
        sender_task.cancel()
