"""Notification router - FastAPI endpoints and the push channel for notifications"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_user
from ...database import get_db
from ...models import User
from . import events
from .channel import ChannelHandshake, serve_channel
from .delivery import NotificationRouter
from .registry import ConnectionRegistry
from .repository import NotificationRepository
from .schemas import (
    BroadcastRequest,
    EmergencyRequest,
    HealthResponse,
    MaintenanceRequest,
    MarkAllReadResponse,
    MessageResponse,
    NotificationEvent,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    NotificationTypeInfo,
    SendTestNotificationRequest,
)
from .service import DEFAULT_TIMEFRAME, NotificationService
from .types import NOTIFICATION_TYPE_DESCRIPTIONS, NotificationType, Target

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])
ws_router = APIRouter(tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    """Dependency injection for NotificationService"""
    return NotificationService(db)


def get_connection_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.connection_registry


def get_notification_router(request: Request) -> NotificationRouter:
    return request.app.state.notification_router


# ============================================================================
# PUSH CHANNEL
# ============================================================================


@ws_router.websocket("/ws")
async def notification_channel(websocket: WebSocket):
    """Persistent push channel; the first message must be {"type": "auth", "token": ...}"""
    state = websocket.app.state
    handshake: ChannelHandshake = state.channel_handshake
    await serve_channel(websocket, state.connection_registry, handshake)


# ============================================================================
# USER OPERATIONS
# ============================================================================


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    read: Optional[bool] = Query(None),
    type: Optional[NotificationType] = Query(None),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Get the current user's notifications, newest first"""
    return service.list_notifications(current_user, page, limit, read, type)


@router.get("/unread", response_model=list[NotificationResponse])
async def get_unread_notifications(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Get all unread notifications, newest first"""
    return service.get_unread(current_user)


@router.get("/types", response_model=list[NotificationTypeInfo])
async def get_notification_types(current_user: User = Depends(get_current_user)):
    """List every notification type with its description"""
    return [
        NotificationTypeInfo(type=t.value, description=description)
        for t, description in NOTIFICATION_TYPE_DESCRIPTIONS.items()
    ]


# Declared before /{notification_id}/read so "read-all" is not taken as an id
@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark all of the current user's notifications as read"""
    updated = service.mark_all_as_read(current_user)
    return MarkAllReadResponse(message="All notifications marked as read", updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one notification as read (recipient only)"""
    return service.mark_as_read(notification_id, current_user)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Delete one notification (recipient only)"""
    return service.delete_notification(notification_id, current_user)


# ============================================================================
# ADMIN OPERATIONS
# ============================================================================


@router.get("/stats", response_model=NotificationStatsResponse)
async def get_notification_stats(
    timeframe: str = Query(DEFAULT_TIMEFRAME, description="24h, 7d or 30d"),
    current_admin: User = Depends(get_current_admin),
    service: NotificationService = Depends(get_notification_service),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """Notification statistics and live connection counts"""
    return service.get_stats(registry, timeframe)


@router.post("/test", response_model=MessageResponse)
async def send_test_notification(
    data: SendTestNotificationRequest,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
    notification_router: NotificationRouter = Depends(get_notification_router),
):
    """Push and persist a notification for one user"""
    if not NotificationRepository.user_exists(db, data.userId):
        raise HTTPException(status_code=404, detail="User not found")

    try:
        event = NotificationEvent(type=data.type, title=data.title, message=data.message, data=data.data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Missing required fields: userId, title, message") from e

    report = await notification_router.deliver(event, Target.user(data.userId))
    if not report.reached_anyone:
        raise HTTPException(status_code=500, detail="Failed to send test notification")

    logger.info(f"🧪 Admin {current_admin.id} sent test notification to user {data.userId}")
    return MessageResponse(message="Test notification sent successfully")


@router.post("/broadcast", response_model=MessageResponse)
async def send_broadcast(
    data: BroadcastRequest,
    current_admin: User = Depends(get_current_admin),
    notification_router: NotificationRouter = Depends(get_notification_router),
):
    """Push a notification to every live channel (not persisted)"""
    try:
        event = NotificationEvent(type=data.type, title=data.title, message=data.message, data=data.data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Missing required fields: title, message") from e

    report = await notification_router.deliver(event, Target.everyone())
    logger.info(f"📢 Admin {current_admin.id} broadcast {data.type.value} to {report.pushed} channels")
    return MessageResponse(message="Broadcast notification sent successfully")


@router.post("/maintenance", response_model=MessageResponse)
async def send_maintenance_notice(
    data: MaintenanceRequest,
    current_admin: User = Depends(get_current_admin),
    notification_router: NotificationRouter = Depends(get_notification_router),
):
    """Announce a maintenance window to every live channel"""
    if not data.startTime or not data.endTime or not data.description:
        raise HTTPException(
            status_code=400, detail="Missing required fields: startTime, endTime, description"
        )

    await events.notify_system_maintenance(
        notification_router, data.startTime, data.endTime, data.description
    )
    return MessageResponse(message="System maintenance notification sent successfully")


@router.post("/emergency", response_model=MessageResponse)
async def send_emergency_alert(
    data: EmergencyRequest,
    current_admin: User = Depends(get_current_admin),
    notification_router: NotificationRouter = Depends(get_notification_router),
):
    """Push an emergency alert to every live channel"""
    if not data.alertType or not data.message.strip():
        raise HTTPException(status_code=400, detail="Missing required fields: alertType, message")

    report = await events.notify_emergency_alert(
        notification_router, data.alertType, data.message, data.priority
    )
    logger.warning(
        f"🚨 Emergency alert {data.alertType} ({data.priority}) sent to {report.pushed} channels"
    )
    return MessageResponse(message="Emergency alert sent successfully")


@router.get("/health", response_model=HealthResponse)
async def get_notification_health(
    current_admin: User = Depends(get_current_admin),
    service: NotificationService = Depends(get_notification_service),
    registry: ConnectionRegistry = Depends(get_connection_registry),
):
    """Connection registry health snapshot"""
    return service.health_check(registry)
