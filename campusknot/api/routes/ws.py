"""Live channel WebSocket endpoint."""

import json
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from campusknot.live.hub import TYPING_EVENTS, ConnectionHub, Event, build_frame
from campusknot.services.auth_service import authenticate
from campusknot.utils.database import session_scope
from campusknot.utils.errors import AuthenticationError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json(build_frame(Event.ERROR, {"message": message}))


def _as_user_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


async def handle_frame(hub: ConnectionHub, websocket: WebSocket, user_id: int, raw: str) -> None:
    """Dispatch one client frame ``{"event": ..., "data": ...}``."""
    try:
        frame = json.loads(raw)
    except ValueError:
        await _send_error(websocket, "Malformed frame")
        return
    if not isinstance(frame, dict):
        await _send_error(websocket, "Malformed frame")
        return

    data = frame.get("data")
    if not isinstance(data, dict):
        data = {}

    try:
        event = Event(frame.get("event"))
    except ValueError:
        await _send_error(websocket, "Unknown event")
        return

    if event is Event.REGISTER:
        claimed = data.get("userId")
        if claimed is not None and _as_user_id(claimed) != user_id:
            logger.warning("Live register with mismatched identity", user_id=user_id, claimed=claimed)
            await _send_error(websocket, "User mismatch")
            return
        await hub.register(websocket, user_id)
        return

    if event in TYPING_EVENTS:
        to_user_id = _as_user_id(data.get("toUserId"))
        if to_user_id is None:
            await _send_error(websocket, "toUserId is required")
            return
        await hub.relay_typing(user_id, to_user_id, event)
        return

    await _send_error(websocket, "Unknown event")


@router.websocket("/ws")
async def live_channel(websocket: WebSocket, token: Optional[str] = Query(default=None)) -> None:
    """Accept a live connection for the user named by ``token``."""
    hub: ConnectionHub = websocket.app.state.hub

    with session_scope() as session:
        try:
            user_id = authenticate(session, token).id
        except AuthenticationError as e:
            logger.info("Rejected live connection", reason=e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()
    hub.connect(websocket)
    logger.debug("Live connection opened", user_id=user_id)
    try:
        while True:
            raw = await websocket.receive_text()
            await handle_frame(hub, websocket, user_id, raw)
    except WebSocketDisconnect:
        logger.debug("Live connection closed", user_id=user_id)
    finally:
        await hub.disconnect(websocket)
