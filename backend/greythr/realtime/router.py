from __future__ import annotations

import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import sessionmaker
from starlette.concurrency import run_in_threadpool

from greythr.api.deps import authenticate_token
from greythr.core.errors import Unauthenticated
from greythr.core.logging import bind_context, clear_context, get_logger
from greythr.core.security import TokenSigner, get_token_signer
from greythr.db.session import get_session_factory
from greythr.realtime.handlers import EventContext, dispatch
from greythr.realtime.hub import ChannelHub, Connection

router = APIRouter(tags=["realtime"])
logger = get_logger(__name__)


def _handshake_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def _authenticate(session_factory: sessionmaker, signer: TokenSigner, token: str | None) -> tuple[int, str]:
    with session_factory() as db:
        user = authenticate_token(db, signer, token)
        return user.id, user.name


@router.websocket("/ws")
async def channel(
    websocket: WebSocket,
    session_factory: sessionmaker = Depends(get_session_factory),
    signer: TokenSigner = Depends(get_token_signer),
) -> None:
    try:
        user_id, user_name = await run_in_threadpool(
            _authenticate, session_factory, signer, _handshake_token(websocket)
        )
    except Unauthenticated as exc:
        logger.warning("ws_auth_failed", detail=exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=f"Authentication error: {exc.message}")
        return

    await websocket.accept()
    hub: ChannelHub = websocket.app.state.hub
    connection = Connection(websocket, user_id, user_name)
    hub.register(connection)
    ctx = EventContext(hub, connection, session_factory)
    bind_context(ws_user_id=user_id, connection_id=connection.id)

    try:
        await connection.emit("connected", {"userId": user_id, "connectionId": connection.id})
        while True:
            text = await websocket.receive_text()
            try:
                frame = json.loads(text)
            except ValueError:
                await connection.emit("error", {"event": None, "message": "Malformed frame"})
                continue
            await dispatch(ctx, frame)
    except WebSocketDisconnect as exc:
        logger.debug("ws_closed", user_id=user_id, code=exc.code)
    finally:
        hub.unregister(connection)
        await hub.broadcast("user_status_update", {"userId": user_id, "status": "offline"})
        clear_context()
