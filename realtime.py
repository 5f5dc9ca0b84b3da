# realtime.py
"""WebSocket channel for chat delivery, typing indicators and presence.

Clients connect to ``/ws?token=<jwt>`` and exchange JSON frames shaped like
``{"event": "...", ...}``. Incoming events: ``message``, ``typing``, ``read``
and ``online_users``.
"""
import json
import logging

from fastapi import WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

import chat
from auth import decode_token
from database import SessionLocal, User
from errors import AppError
from presence import presence
from schemas import MessageOut

logger = logging.getLogger(__name__)


async def _send(connections, payload: dict):
    for connection in connections:
        try:
            await connection.send_json(payload)
        except Exception:
            logger.warning("Dropping frame %s to a closed connection", payload.get("event"))


def _lookup_user(user_id: int):
    with SessionLocal() as db:
        user = db.get(User, user_id)
        if user is None:
            return None
        return {"id": user.id, "name": user.name}


def _store_message(user_id: int, receiver_id: int, content: str) -> dict:
    with SessionLocal() as db:
        sender = db.get(User, user_id)
        message = chat.send_message(db, sender, receiver_id, content)
        return MessageOut.model_validate(message).model_dump(mode="json")


def _mark_read(user_id: int, sender_id: int) -> int:
    with SessionLocal() as db:
        return chat.mark_read(db, user_id, sender_id)


async def _handle(websocket: WebSocket, user: dict, frame: dict):
    event = frame.get("event")
    user_id = user["id"]

    if event == "message":
        receiver_id = frame.get("receiver_id")
        content = (frame.get("content") or "").strip()
        if not isinstance(receiver_id, int) or not content:
            await websocket.send_json({"event": "error", "detail": "receiver_id and content are required"})
            return
        try:
            message = await run_in_threadpool(_store_message, user_id, receiver_id, content)
        except AppError as exc:
            await websocket.send_json({"event": "error", "detail": exc.message})
            return
        payload = {"event": "receive_message", "sender_name": user["name"], "message": message}
        await _send(presence.connections(receiver_id), payload)
        await _send(presence.connections(user_id), payload)

    elif event == "typing":
        receiver_id = frame.get("receiver_id")
        if not isinstance(receiver_id, int):
            await websocket.send_json({"event": "error", "detail": "receiver_id is required"})
            return
        await _send(
            presence.connections(receiver_id),
            {
                "event": "user_typing",
                "user_id": user_id,
                "user_name": user["name"],
                "is_typing": bool(frame.get("is_typing", True)),
            },
        )

    elif event == "read":
        sender_id = frame.get("sender_id")
        if not isinstance(sender_id, int):
            await websocket.send_json({"event": "error", "detail": "sender_id is required"})
            return
        updated = await run_in_threadpool(_mark_read, user_id, sender_id)
        await _send(
            presence.connections(sender_id),
            {"event": "messages_read", "reader_id": user_id, "count": updated},
        )

    elif event == "online_users":
        await websocket.send_json({"event": "online_users", "user_ids": presence.online_users()})

    else:
        await websocket.send_json({"event": "error", "detail": f"Unknown event: {event}"})


async def websocket_endpoint(websocket: WebSocket, token: str = None):
    try:
        user_id = decode_token(token or "")
    except AppError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user = await run_in_threadpool(_lookup_user, user_id)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    if presence.connect(user_id, websocket):
        await _send(
            presence.everyone_except(user_id),
            {"event": "user_online", "user_id": user_id, "user_name": user["name"]},
        )
    logger.info("User %s connected", user_id)

    try:
        while True:
            text = await websocket.receive_text()
            try:
                frame = json.loads(text)
            except ValueError:
                await websocket.send_json({"event": "error", "detail": "Frames must be valid JSON"})
                continue
            if not isinstance(frame, dict):
                await websocket.send_json({"event": "error", "detail": "Frames must be JSON objects"})
                continue
            await _handle(websocket, user, frame)
    except WebSocketDisconnect:
        pass
    finally:
        if presence.disconnect(user_id, websocket):
            await _send(presence.everyone_except(user_id), {"event": "user_offline", "user_id": user_id})
        logger.info("User %s disconnected", user_id)
