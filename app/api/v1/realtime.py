"""Realtime presence channel over WebSocket.

Browsers cannot set headers on a WebSocket handshake, so the token and session id
travel as query parameters and are checked exactly like the HTTP gateway does.
"""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.api.v1.deps import authenticate
from app.core.database import get_db
from app.core.errors import SessionError, SessionErrorCode
from app.core.security import verify_access_token
from app.services.presence import presence

logger = logging.getLogger(__name__)

router = APIRouter()

WS_CLOSE_UNAUTHORIZED = 4401


def _authenticated_user_id(db: Session, session_id: str, access_token: str) -> int:
    ctx = authenticate(db, session_id, access_token)
    return ctx.user.id


@router.websocket("/ws")
async def presence_socket(
    websocket: WebSocket,
    db: Annotated[Session, Depends(get_db)],
    access_token: Annotated[str | None, Query()] = None,
    session_id: Annotated[str | None, Query()] = None,
) -> None:
    claims = verify_access_token(access_token) if access_token else None
    if claims is None:
        logger.info("WebSocket rejected: %s", SessionErrorCode.TOKEN_INVALID.value)
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED, reason=SessionErrorCode.TOKEN_INVALID.value)
        return
    try:
        user_id = await run_in_threadpool(
            _authenticated_user_id, db, session_id or claims.session_id, access_token
        )
    except SessionError as exc:
        logger.info("WebSocket rejected: %s", exc.session_code.value)
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED, reason=exc.session_code.value)
        return
    finally:
        db.close()

    # Checked once at connect. Revoking the session later (logout, password reset,
    # admin terminate) does not close a live socket, so presence never proves a
    # session is still valid.
    await websocket.accept()
    first = presence.add(user_id, websocket)
    await websocket.send_json({"type": "presence:snapshot", "online": presence.online_user_ids()})
    if first:
        await presence.broadcast(
            {"type": "presence:update", "user_id": user_id, "online": True},
            exclude=websocket,
        )

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        if presence.remove(user_id, websocket):
            await presence.broadcast({"type": "presence:update", "user_id": user_id, "online": False})
