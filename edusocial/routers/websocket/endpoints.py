import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from edusocial.common import resolve_token
from edusocial.core.websocket.websocket_manager import manager
from edusocial.database import AsyncSessionLocal
from edusocial.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["web-socket"])


@router.websocket("/{user_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    user_id: str,
    token: Optional[str] = Query(None),
):
    """
    Realtime notification channel.

    Browsers cannot set headers on a WebSocket handshake, so the bearer token
    travels as the ``token`` query parameter; it must belong to ``user_id``.
    The server only pushes; anything the client sends is read and dropped.
    """
    try:
        claims = resolve_token(token) if token else None
    except HTTPException:
        claims = None
    if not claims or claims.get("uid") != user_id:
        logger.warning(f"Refused WebSocket for {user_id}: missing or foreign token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with AsyncSessionLocal() as db:
        user = await db.get(User, user_id)
    if not user:
        logger.warning(f"Refused WebSocket for unknown user {user_id}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await manager.connect(websocket, user_id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.disconnect(websocket, user_id, reason="client disconnected")
