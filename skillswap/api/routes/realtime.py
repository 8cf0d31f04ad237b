"""
Real-Time Relay WebSocket Endpoint

WS /ws?token=<api_token>

On connect the socket joins the user's room and receives {"event": "joined"}.
Server pushes arrive as {"event": <name>, "data": {...}}. Client frames:
- {"event": "sendMessage", "data": {"receiver_id", "content"}}
- {"event": "typing", "data": {"receiver_id", "is_typing"}}
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from skillswap.api.auth import resolve_token
from skillswap.models.user import User
from skillswap.schemas import ChatMessageView
from skillswap.services.chat_service import get_chat_service
from skillswap.services.errors import SkillSwapError
from skillswap.services.relay import get_relay

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def handle_frame(user: User, frame: Dict[str, Any], websocket: WebSocket) -> None:
    """Dispatch one client frame."""
    event = frame.get("event")
    data = frame.get("data") or {}
    if not isinstance(data, dict):
        await websocket.send_json({"event": "error", "data": {"error": "Frame data must be an object"}})
        return
    chat = get_chat_service()

    if event == "sendMessage":
        try:
            message = await chat.send_message(user, data.get("receiver_id"), data.get("content", ""))
        except (SkillSwapError, ValueError) as e:
            await websocket.send_json({"event": "messageError", "data": {"error": str(e)}})
            return
        await websocket.send_json({
            "event": "messageSent",
            "data": {"success": True, "message": ChatMessageView.model_validate(message).model_dump(mode="json")},
        })
    elif event == "typing":
        try:
            await chat.relay_typing(user, data.get("receiver_id"), data.get("is_typing", False))
        except ValueError:
            await websocket.send_json({"event": "error", "data": {"error": "Invalid receiver_id"}})
    else:
        await websocket.send_json({"event": "error", "data": {"error": f"Unknown event: {event}"}})


@router.websocket("/ws")
async def relay_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    try:
        user = await resolve_token(token)
    except HTTPException as e:
        logger.warning(f"Rejected relay connection: {e.status_code}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    relay = get_relay()
    relay.register(str(user.id), websocket)
    await websocket.send_json({"event": "joined", "data": {"user_id": str(user.id)}})

    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"event": "error", "data": {"error": "Malformed frame"}})
                continue
            if not isinstance(frame, dict):
                await websocket.send_json({"event": "error", "data": {"error": "Malformed frame"}})
                continue
            await handle_frame(user, frame, websocket)
    except WebSocketDisconnect:
        logger.info(f"User {user.id} disconnected")
    finally:
        relay.unregister(websocket)
