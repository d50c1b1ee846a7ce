"""WebSocket endpoint for real-time inventory synchronization."""

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from eat.database import SessionLocal
from eat.models.user import User
from eat.services.auth import decode_user_id
from eat.services.realtime import RealtimeService, inventory_channel

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/ws", tags=["websocket"])


@router.websocket("/inventory")
async def websocket_inventory_sync(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """Stream the user's inventory events (cooks, undos, manual edits).

    Authentication via token query parameter (WebSocket doesn't support headers).
    """
    realtime_service = RealtimeService()
    user_id = decode_user_id(token)

    try:
        if user_id is None:
            await websocket.close(code=4001, reason="Invalid token")
            return

        # Manual DB session for WebSocket (can't use Depends normally)
        db = SessionLocal()
        try:
            user = db.query(User).filter(User.id == user_id).first()
        finally:
            db.close()
        if not user:
            await websocket.close(code=4001, reason="User not found")
            return

        await websocket.accept()
        logger.info(f"WebSocket connected: user={user_id}")

        async def handle_messages() -> None:
            """Receive messages from Redis and forward to WebSocket."""
            async for message in realtime_service.subscribe(inventory_channel(user_id)):
                try:
                    await websocket.send_json(message)
                except WebSocketDisconnect:
                    break

        async def handle_ping() -> None:
            """Send periodic pings to keep connection alive."""
            while True:
                await asyncio.sleep(30)
                await websocket.send_json({"type": "ping"})

        async def handle_client() -> None:
            """Drain client messages (pong responses) until it disconnects."""
            while True:
                await websocket.receive_json()

        # Whichever handler stops first (usually the client leaving) ends the session
        tasks = [
            asyncio.create_task(handle_messages()),
            asyncio.create_task(handle_ping()),
            asyncio.create_task(handle_client()),
        ]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"WebSocket handler stopped: {task.exception()!r}")

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: user={user_id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        await realtime_service.cleanup()
