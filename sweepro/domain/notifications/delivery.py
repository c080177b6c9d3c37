"""
Notification Router
Pushes event records to live channels and persists copies for offline replay.

Push and persistence are independent best-effort operations: a push that
fails is skipped, a persistence failure is logged and never undoes a push.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from .registry import Connection, ConnectionRegistry
from .repository import NotificationRepository
from .schemas import NotificationEvent
from .types import Target, TargetKind

logger = logging.getLogger(__name__)


@dataclass
class DeliveryReport:
    """Outcome of a single deliver() call"""

    target: str
    pushed: int = 0
    persisted_ids: list[str] = field(default_factory=list)
    persistence_failures: int = 0

    @property
    def persisted(self) -> int:
        return len(self.persisted_ids)

    @property
    def reached_anyone(self) -> bool:
        return self.pushed > 0 or self.persisted > 0


class NotificationRouter:
    """Decides push and persistence targets for an event record"""

    def __init__(self, registry: ConnectionRegistry, session_factory: Callable[[], Session]):
        self.registry = registry
        self.session_factory = session_factory

    async def deliver(self, event: NotificationEvent, target: Target) -> DeliveryReport:
        report = DeliveryReport(target=str(target))

        if target.kind is TargetKind.USER:
            connection = self.registry.get(target.user_id)
            attempted = False
            if connection is not None and connection.is_open:
                attempted = True
                if await self._push(connection, event):
                    report.pushed += 1
            self._persist(report, event, [(target.user_id, attempted)])

        elif target.kind is TargetKind.ROLE_CLASS:
            attempted_ids = set()
            for connection in self.registry.connections_for(target.role_class):
                if connection.is_open:
                    attempted_ids.add(connection.user_id)
                if await self._push(connection, event):
                    report.pushed += 1
            # Persist for role membership, not for who happened to be live
            member_ids = self._role_member_ids(report, target)
            self._persist(report, event, [(uid, uid in attempted_ids) for uid in member_ids])

        else:
            for connection in self.registry.all_connections():
                if await self._push(connection, event):
                    report.pushed += 1

        logger.debug(
            f"📨 {event.type.value} → {report.target}: pushed={report.pushed}, "
            f"persisted={report.persisted}, failures={report.persistence_failures}"
        )
        return report

    async def _push(self, connection: Connection, event: NotificationEvent) -> bool:
        """Send one frame; a channel that is not open is skipped silently"""
        if not connection.is_open:
            return False
        try:
            await connection.send_json(event.to_frame())
            return True
        except Exception as e:
            logger.warning(f"⚠️ Push of {event.type.value} to user {connection.user_id} failed: {e}")
            return False

    def _role_member_ids(self, report: DeliveryReport, target: Target) -> list[int]:
        db = self.session_factory()
        try:
            return NotificationRepository.get_user_ids_by_roles(db, target.role_class.roles)
        except Exception as e:
            report.persistence_failures += 1
            logger.error(f"❌ Error loading {target.role_class.value} members: {e}")
            return []
        finally:
            db.close()

    def _persist(
        self,
        report: DeliveryReport,
        event: NotificationEvent,
        recipients: list[tuple[int, bool]],
    ) -> None:
        """Persist one copy per (user_id, delivered) pair"""
        if not recipients:
            return

        db = self.session_factory()
        try:
            for user_id, delivered in recipients:
                try:
                    notification = NotificationRepository.create(db, user_id, event, delivered)
                    report.persisted_ids.append(notification.public_id)
                except Exception as e:
                    db.rollback()
                    report.persistence_failures += 1
                    logger.error(
                        f"❌ Error saving {event.type.value} notification for user {user_id}: {e}"
                    )
        finally:
            db.close()
