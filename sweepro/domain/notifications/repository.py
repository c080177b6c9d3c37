"""Notification repository - Database operations for persisted event records"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import User
from ...models_notification import Notification
from ...shared.timeutils import utcnow
from .schemas import NotificationEvent
from .types import NotificationType, Role


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def create(
        db: Session, user_id: int, event: NotificationEvent, delivered: bool = False
    ) -> Notification:
        """Persist one copy of an event for a single recipient"""
        notification = Notification(
            user_id=user_id,
            type=event.type.value,
            title=event.title,
            message=event.message,
            data=event.data or {},
            read=False,
            delivered=delivered,
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def _filtered(
        db: Session,
        user_id: Optional[int] = None,
        read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
        since: Optional[datetime] = None,
    ):
        query = db.query(Notification)
        if user_id is not None:
            query = query.filter(Notification.user_id == user_id)
        if read is not None:
            query = query.filter(Notification.read == read)
        if notification_type is not None:
            query = query.filter(Notification.type == notification_type.value)
        if since is not None:
            query = query.filter(Notification.created_at >= since)
        return query

    @staticmethod
    def list_for_user(
        db: Session,
        user_id: int,
        read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> list[Notification]:
        """Get a page of a user's notifications, newest first"""
        return (
            NotificationRepository._filtered(db, user_id, read, notification_type)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    @staticmethod
    def count(
        db: Session,
        user_id: Optional[int] = None,
        read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
        since: Optional[datetime] = None,
    ) -> int:
        """Count notifications matching the filter"""
        return NotificationRepository._filtered(
            db, user_id, read, notification_type, since
        ).count()

    @staticmethod
    def get_unread(db: Session, user_id: int) -> list[Notification]:
        """Get all unread notifications for a user, newest first"""
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    @staticmethod
    def get_by_public_id(db: Session, public_id: str) -> Optional[Notification]:
        return db.query(Notification).filter(Notification.public_id == public_id).first()

    @staticmethod
    def mark_read(db: Session, notification: Notification) -> Notification:
        """Mark a notification read. readAt keeps the time of the first read."""
        if notification.read:
            return notification

        notification.read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: int) -> int:
        """Mark every unread notification of a user read. Returns the number updated."""
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .update({"read": True, "read_at": utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete(db: Session, notification: Notification) -> None:
        db.delete(notification)
        db.commit()

    @staticmethod
    def count_by_type(db: Session, since: Optional[datetime] = None) -> list[tuple[str, int]]:
        """Notification counts grouped by type"""
        query = db.query(Notification.type, func.count(Notification.id))
        if since is not None:
            query = query.filter(Notification.created_at >= since)
        return [(row[0], row[1]) for row in query.group_by(Notification.type).all()]

    @staticmethod
    def get_user_ids_by_roles(db: Session, roles: Iterable[Role]) -> list[int]:
        """Ids of every user currently holding one of the given roles"""
        role_values = [role.value for role in roles]
        rows = db.query(User.id).filter(User.role.in_(role_values)).order_by(User.id).all()
        return [row[0] for row in rows]

    @staticmethod
    def user_exists(db: Session, user_id: int) -> bool:
        return db.query(User.id).filter(User.id == user_id).first() is not None
