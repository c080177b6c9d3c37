"""
Notification channel protocol

Client → server:
    {"type": "auth", "token": "<jwt>"}   first message; binds the channel to a user
    {"type": "ping"}                      liveness; answered with {"type": "pong"}
Anything else is ignored.

Server → client:
    {"type": "auth_success", "user": {"id", "name", "role"}}
    serialized event records with a "timestamp"
Authentication failures close the channel with code 1008, never with an error frame.
"""

import json
import logging
from typing import Callable, Optional

from fastapi import WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ...auth import resolve_identity
from .registry import Connection, ConnectionRegistry
from .types import Role

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


class ChannelHandshake:
    """Authenticates a freshly opened channel and binds it into the registry"""

    def __init__(self, registry: ConnectionRegistry, session_factory: Callable[[], Session]):
        self.registry = registry
        self.session_factory = session_factory

    async def authenticate(self, connection: Connection, token: Optional[str]) -> bool:
        db = self.session_factory()
        try:
            user = resolve_identity(token, db)
            identity = (user.id, Role(user.role), user.name) if user else None
        except Exception as e:
            logger.error(f"❌ Channel authentication error: {e}")
            identity = None
        finally:
            db.close()

        if identity is None:
            await connection.close(code=POLICY_VIOLATION, reason="Authentication failed")
            logger.info("🚫 Notification channel rejected: invalid credential")
            return False

        user_id, role, name = identity
        previous = self.registry.register(connection, user_id, role, name)
        if previous is not None and previous is not connection:
            logger.info(f"🔄 User {user_id} reconnected; replaced previous channel")

        await connection.send_json(
            {
                "type": "auth_success",
                "user": {"id": user_id, "name": name, "role": role.value},
            }
        )
        logger.info(f"🔐 User {name} ({role.value}) authenticated on notification channel")
        return True


async def handle_channel_message(
    connection: Connection, handshake: ChannelHandshake, raw: str
) -> bool:
    """
    Process one inbound frame.
    Returns False when the channel has been closed and the read loop should stop.
    """
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.debug("Ignoring malformed notification channel frame")
        return True

    if not isinstance(message, dict):
        return True

    message_type = message.get("type")
    if message_type == "auth":
        return await handshake.authenticate(connection, message.get("token"))
    if message_type == "ping":
        connection.touch()
        await connection.send_json({"type": "pong"})
    return True


async def serve_channel(
    websocket: WebSocket, registry: ConnectionRegistry, handshake: ChannelHandshake
) -> None:
    """Accept a channel and run its read loop until it closes"""
    await websocket.accept()
    connection = Connection(websocket)
    logger.debug("New notification channel opened")

    try:
        while True:
            raw = await websocket.receive_text()
            if not await handle_channel_message(connection, handshake, raw):
                break
    except WebSocketDisconnect:
        logger.debug(f"Notification channel disconnected (user: {connection.user_id or 'anonymous'})")
    except Exception as e:
        logger.error(f"❌ Notification channel error (user: {connection.user_id}): {e}")
    finally:
        registry.remove(connection)
