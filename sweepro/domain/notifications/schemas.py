"""Notification domain schemas - Pydantic models for events, API payloads and responses"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.timeutils import isoformat_utc
from .types import NotificationType


class NotificationEvent(BaseModel):
    """An event record before it is pushed or persisted"""

    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", "message")
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v

    def with_text(self, title: str, message: str) -> "NotificationEvent":
        """Same type and payload, different wording for another audience"""
        return self.model_copy(update={"title": title, "message": message})

    def to_frame(self) -> dict[str, Any]:
        """Server-to-client push frame"""
        return {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "timestamp": isoformat_utc(),
        }


class NotificationResponse(BaseModel):
    """Schema for a persisted notification"""

    id: str
    userId: int
    type: str
    title: str
    message: str
    data: dict[str, Any]
    read: bool
    readAt: Optional[datetime] = None
    delivered: bool
    createdAt: datetime

    @classmethod
    def from_model(cls, notification) -> "NotificationResponse":
        return cls(
            id=notification.public_id,
            userId=notification.user_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            data=notification.data or {},
            read=notification.read,
            readAt=notification.read_at,
            delivered=notification.delivered,
            createdAt=notification.created_at,
        )


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    pagination: PaginationInfo
    unreadCount: int


class NotificationTypeInfo(BaseModel):
    type: str
    description: str


class TypeCount(BaseModel):
    type: str
    count: int


class NotificationStatsResponse(BaseModel):
    totalNotifications: int
    sentNotifications: int
    readNotifications: int
    unreadNotifications: int
    readRate: float
    notificationsByType: list[TypeCount]
    connections: dict[str, Any]
    timeframe: str


class HealthResponse(BaseModel):
    status: str
    connections: dict[str, Any]
    recentNotifications: int
    timestamp: str


class MessageResponse(BaseModel):
    message: str


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int


# Admin request payloads
class SendTestNotificationRequest(BaseModel):
    userId: int
    type: NotificationType = NotificationType.SYSTEM_ALERT
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class BroadcastRequest(BaseModel):
    type: NotificationType = NotificationType.SYSTEM_ALERT
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class MaintenanceRequest(BaseModel):
    startTime: str
    endTime: str
    description: str


class EmergencyRequest(BaseModel):
    alertType: str
    message: str
    priority: str = "HIGH"
