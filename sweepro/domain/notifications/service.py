"""Notification service - Business logic for the client notification API"""

import logging
import math
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_notification import Notification
from ...shared.timeutils import isoformat_utc, utcnow
from .registry import ConnectionRegistry
from .repository import NotificationRepository
from .schemas import (
    HealthResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    PaginationInfo,
    TypeCount,
)
from .types import NotificationType

logger = logging.getLogger(__name__)

STATS_TIMEFRAMES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_TIMEFRAME = "7d"


class NotificationService:
    """Service layer for a user's persisted notifications and admin reporting"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def list_notifications(
        self,
        user: User,
        page: int = 1,
        limit: int = 20,
        read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
    ) -> NotificationListResponse:
        """Paginated notifications for a user, newest first, plus the unread count"""
        offset = (page - 1) * limit
        notifications = self.repo.list_for_user(
            self.db, user.id, read, notification_type, offset=offset, limit=limit
        )
        total = self.repo.count(self.db, user_id=user.id, read=read, notification_type=notification_type)
        unread_count = self.repo.count(self.db, user_id=user.id, read=False)

        return NotificationListResponse(
            notifications=[NotificationResponse.from_model(n) for n in notifications],
            pagination=PaginationInfo(
                page=page,
                limit=limit,
                total=total,
                totalPages=math.ceil(total / limit) if limit else 0,
            ),
            unreadCount=unread_count,
        )

    def get_unread(self, user: User) -> list[NotificationResponse]:
        return [NotificationResponse.from_model(n) for n in self.repo.get_unread(self.db, user.id)]

    def _get_owned(self, notification_id: str, user: User) -> Notification:
        """Load a notification, enforcing that the caller is its recipient"""
        notification = self.repo.get_by_public_id(self.db, notification_id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        if notification.user_id != user.id:
            logger.warning(
                f"⚠️ User {user.id} attempted to access notification {notification_id} "
                f"owned by user {notification.user_id}"
            )
            raise HTTPException(status_code=403, detail="Access denied")
        return notification

    def mark_as_read(self, notification_id: str, user: User) -> NotificationResponse:
        notification = self._get_owned(notification_id, user)
        notification = self.repo.mark_read(self.db, notification)
        return NotificationResponse.from_model(notification)

    def mark_all_as_read(self, user: User) -> int:
        updated = self.repo.mark_all_read(self.db, user.id)
        logger.info(f"✅ Marked {updated} notifications read for user {user.id}")
        return updated

    def delete_notification(self, notification_id: str, user: User) -> dict:
        notification = self._get_owned(notification_id, user)
        self.repo.delete(self.db, notification)
        logger.info(f"🗑️ Notification {notification_id} deleted by user {user.id}")
        return {"message": "Notification deleted successfully"}

    def get_stats(
        self, registry: ConnectionRegistry, timeframe: str = DEFAULT_TIMEFRAME
    ) -> NotificationStatsResponse:
        """
        Aggregate notification statistics.
        totalNotifications is all-time; every other count is limited to the
        timeframe window. Unknown timeframes fall back to 7 days.
        """
        window = STATS_TIMEFRAMES.get(timeframe, STATS_TIMEFRAMES[DEFAULT_TIMEFRAME])
        since = utcnow() - window

        total = self.repo.count(self.db)
        sent = self.repo.count(self.db, since=since)
        read = self.repo.count(self.db, read=True, since=since)
        unread = self.repo.count(self.db, read=False, since=since)

        return NotificationStatsResponse(
            totalNotifications=total,
            sentNotifications=sent,
            readNotifications=read,
            unreadNotifications=unread,
            readRate=round(read / sent * 100, 2) if sent else 0.0,
            notificationsByType=[
                TypeCount(type=t, count=c) for t, c in self.repo.count_by_type(self.db, since=since)
            ],
            connections=registry.stats(),
            timeframe=timeframe,
        )

    def health_check(self, registry: ConnectionRegistry) -> HealthResponse:
        """Registry snapshot plus the number of notifications created in the last 24 hours"""
        recent = self.repo.count(self.db, since=utcnow() - timedelta(hours=24))
        return HealthResponse(
            status="healthy",
            connections=registry.stats(),
            recentNotifications=recent,
            timestamp=isoformat_utc(),
        )
