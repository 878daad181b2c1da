import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.auth_service import ACCESS_COOKIE, resolve_user_from_token
from app.services.websocket_manager import ConnectionLimitExceeded, websocket_manager

logger = logging.getLogger("tawaqo.ws")

router = APIRouter()


def _token_from_ws(ws: WebSocket) -> str | None:
    token = ws.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    return ws.query_params.get("token")


async def _resolve_ws_user(token: str | None) -> dict | None:
    return await resolve_user_from_token(token)


@router.websocket("/ws/notifications")
async def websocket_notifications(ws: WebSocket):
    """Per-user notification feed. Only the authenticated user's rows are pushed."""
    user = await _resolve_ws_user(_token_from_ws(ws))
    if not user:
        await ws.close(code=4401, reason="Not authenticated")
        return

    user_id = str(user["_id"])
    try:
        conn_id = await websocket_manager.connect(ws, user_id=user_id)
    except ConnectionLimitExceeded:
        await ws.close(code=4002, reason="Too many connections")
        return

    logger.info("WS notifications connected: user=%s conn=%s", user_id, conn_id)
    try:
        while True:
            data = await ws.receive_text()
            await websocket_manager.touch(conn_id)
            # Client can send "ping" to keep alive
            if data == "ping":
                await ws.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        await websocket_manager.disconnect(conn_id)
        logger.info("WS notifications disconnected: user=%s conn=%s", user_id, conn_id)
