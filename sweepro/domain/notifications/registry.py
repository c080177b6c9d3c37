"""
Connection Registry
Process-wide map of live notification channels, partitioned by role-class.

All mutating methods are synchronous: under the asyncio event loop each call
runs to completion without yielding, so other coroutines never observe a
connection present in one container and missing from another.
"""

import enum
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from starlette.websockets import WebSocketState

from ...shared.timeutils import isoformat_utc, utcnow
from .types import Role, RoleClass

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    LIVE = "LIVE"
    CLOSED = "CLOSED"


class Connection:
    """A push channel and, once authenticated, the identity bound to it"""

    def __init__(self, channel):
        self.channel = channel
        self.state = ConnectionState.UNAUTHENTICATED
        self.user_id: Optional[int] = None
        self.role: Optional[Role] = None
        self.name: Optional[str] = None
        self.connected_at = utcnow()
        self.last_activity = self.connected_at

    @property
    def role_class(self) -> Optional[RoleClass]:
        return RoleClass.of(self.role) if self.role else None

    @property
    def is_live(self) -> bool:
        return self.state is ConnectionState.LIVE

    @property
    def is_open(self) -> bool:
        """Whether the underlying channel can still carry frames"""
        return (
            getattr(self.channel, "client_state", None) == WebSocketState.CONNECTED
            and getattr(self.channel, "application_state", None) == WebSocketState.CONNECTED
        )

    def touch(self, now: Optional[datetime] = None) -> None:
        """Record inbound activity (liveness ping)"""
        self.last_activity = now or utcnow()

    async def send_json(self, message: dict[str, Any]) -> None:
        await self.channel.send_text(json.dumps(message, default=str))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the underlying channel if it is still open"""
        if not self.is_open:
            return
        try:
            await self.channel.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Channel close failed for user {self.user_id} (non-critical): {e}")

    def __repr__(self) -> str:
        return f"<Connection user={self.user_id} role={self.role} state={self.state.value}>"


class ConnectionRegistry:
    """Live connections by identity, by role-class, and aggregate statistics"""

    def __init__(self):
        self._clients: dict[int, Connection] = {}
        self._maid_clients: dict[int, Connection] = {}
        self._customer_clients: dict[int, Connection] = {}
        # Admins and supervisors are only ever addressed as a group
        self._admin_clients: set[Connection] = set()
        # Connections displaced by a reconnect, kept until they close or go idle
        self._replaced: set[Connection] = set()
        self.total_connections = 0

    # ------------------------------------------------------------------
    # Mutation (handshake, close/error handlers, health monitor)
    # ------------------------------------------------------------------

    def register(
        self, connection: Connection, user_id: int, role: Role, name: str
    ) -> Optional[Connection]:
        """
        Bind an authenticated connection to its identity.
        Returns the connection previously held by the same identity, if any.
        The replaced connection stays open and reachable by broadcasts and the
        health sweep until its own channel closes or it goes idle.
        """
        if connection.is_live:
            self.remove(connection)

        connection.user_id = user_id
        connection.role = role
        connection.name = name
        connection.state = ConnectionState.LIVE
        connection.touch()

        previous = self._clients.get(user_id)
        self._clients[user_id] = connection

        role_class = RoleClass.of(role)
        if role_class is RoleClass.ADMIN:
            self._admin_clients.add(connection)
        elif role_class is RoleClass.MAID:
            self._maid_clients[user_id] = connection
        elif role_class is RoleClass.CUSTOMER:
            self._customer_clients[user_id] = connection

        # An identity whose role changed must not stay in its old container
        if previous is not None and previous is not connection:
            self._detach_role_entry(previous)
            self._replaced.add(previous)

        self.total_connections += 1
        return previous

    def remove(self, connection: Connection) -> bool:
        """
        Drop a connection from every container it participates in.
        Idempotent; never removes a newer connection that replaced this one.
        """
        removed = False
        user_id = connection.user_id

        if user_id is not None and self._clients.get(user_id) is connection:
            del self._clients[user_id]
            removed = True

        if connection in self._admin_clients:
            self._admin_clients.discard(connection)
            removed = True

        if connection in self._replaced:
            self._replaced.discard(connection)
            removed = True

        if self._detach_role_entry(connection):
            removed = True

        connection.state = ConnectionState.CLOSED
        return removed

    def _detach_role_entry(self, connection: Connection) -> bool:
        """Remove the per-identity maid/customer entry if it still points at connection"""
        user_id = connection.user_id
        if user_id is None:
            return False
        detached = False
        if self._maid_clients.get(user_id) is connection:
            del self._maid_clients[user_id]
            detached = True
        if self._customer_clients.get(user_id) is connection:
            del self._customer_clients[user_id]
            detached = True
        return detached

    def evict_idle(self, threshold: timedelta, now: Optional[datetime] = None) -> list[Connection]:
        """
        Remove every live connection idle for longer than threshold.
        Returns the evicted connections so the caller can close their channels.
        """
        now = now or utcnow()
        stale = [
            connection
            for connection in self.all_connections()
            if now - connection.last_activity > threshold
        ]
        for connection in stale:
            self.remove(connection)
        return stale

    # ------------------------------------------------------------------
    # Lookup (router)
    # ------------------------------------------------------------------

    def get(self, user_id: int) -> Optional[Connection]:
        return self._clients.get(user_id)

    def connections_for(self, role_class: RoleClass) -> list[Connection]:
        """Snapshot of the live connections in one role-class container"""
        if role_class is RoleClass.ADMIN:
            return list(self._admin_clients)
        if role_class is RoleClass.MAID:
            return list(self._maid_clients.values())
        return list(self._customer_clients.values())

    def all_connections(self) -> list[Connection]:
        """Snapshot of every live connection, including ones replaced by a reconnect"""
        seen: dict[int, Connection] = {id(c): c for c in self._clients.values()}
        for connection in (*self._admin_clients, *self._replaced):
            seen.setdefault(id(connection), connection)
        return list(seen.values())

    def __contains__(self, connection: Connection) -> bool:
        return connection.user_id is not None and self._clients.get(connection.user_id) is connection

    def __len__(self) -> int:
        return len(self._clients)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @property
    def active_connections(self) -> int:
        return len(self._clients)

    @property
    def admin_connections(self) -> int:
        return len(self._admin_clients)

    @property
    def maid_connections(self) -> int:
        return len(self._maid_clients)

    @property
    def customer_connections(self) -> int:
        return len(self._customer_clients)

    def stats(self) -> dict[str, Any]:
        return {
            "totalConnections": self.total_connections,
            "activeConnections": self.active_connections,
            "adminConnections": self.admin_connections,
            "maidConnections": self.maid_connections,
            "customerConnections": self.customer_connections,
            "timestamp": isoformat_utc(),
        }

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def close_all(self, code: int = 1001, reason: str = "Server shutting down") -> int:
        connections = self.all_connections()
        for connection in connections:
            self.remove(connection)
        for connection in connections:
            await connection.close(code=code, reason=reason)
        if connections:
            logger.info(f"🔌 Closed {len(connections)} notification channels")
        return len(connections)
