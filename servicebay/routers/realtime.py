"""
WebSocket channel carrying ``serviceUpdate`` events.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from servicebay.auth import SessionVerifier
from servicebay.exceptions import Unauthorized

logger = logging.getLogger("servicebay.realtime")

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def service_updates(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Clients connect with ``?token=<access token>`` and then receive
    ``{"event": "serviceUpdate", "data": {...}}`` for every change. Messages
    sent by the client are ignored.
    """
    app = websocket.app
    async with app.state.session_factory() as session:
        try:
            caller = await SessionVerifier(session, app.state.settings).verify(token)
        except Unauthorized as e:
            logger.info("Rejected WebSocket connection: %s", e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    broadcaster = app.state.broadcaster
    await websocket.accept()
    broadcaster.subscribe(websocket)
    logger.info("User %s subscribed to service updates", caller.caller_id)

    # Confirm the subscription so the client knows updates will follow
    await websocket.send_json({"event": "connected", "data": {"userId": caller.caller_id}})
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unsubscribe(websocket)
