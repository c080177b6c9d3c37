"""
Notification event builders

One coroutine per business event. Each builds the event record and hands it
to the router for every audience the event concerns (customer, assigned maid,
admin role-class, everyone), rewording title/message per audience.
Business code calls these after its own transaction has committed.
"""

from datetime import date, datetime
from typing import Any, Optional

from ...shared.timeutils import isoformat_utc, utcnow
from .delivery import NotificationRouter
from .schemas import NotificationEvent
from .types import NotificationType, RoleClass, Target


def _json_value(value: Any) -> Any:
    """Dates travel as ISO strings so the payload stays JSON-serializable"""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _event(
    notification_type: NotificationType, title: str, message: str, **data: Any
) -> NotificationEvent:
    return NotificationEvent(
        type=notification_type,
        title=title,
        message=message,
        data={key: _json_value(value) for key, value in data.items()},
    )


def _role_label(role: Any) -> str:
    return getattr(role, "value", role) or ""


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


async def notify_user_registration(router: NotificationRouter, user) -> None:
    role = _role_label(user.role)
    event = _event(
        NotificationType.USER_REGISTERED,
        "New User Registration",
        f"New {role.lower()} registered: {user.name}",
        userId=user.id,
        userRole=role,
        userName=user.name,
        userEmail=user.email,
    )
    await router.deliver(event, Target.admins())


async def notify_user_profile_update(router: NotificationRouter, user) -> None:
    event = _event(
        NotificationType.PROFILE_UPDATED,
        "Profile Updated",
        "Your profile has been updated successfully",
        userId=user.id,
        userName=user.name,
        updatedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(user.id))


async def notify_user_status_change(
    router: NotificationRouter, user, new_status: str, changed_by: Optional[int] = None
) -> None:
    event = _event(
        NotificationType.USER_STATUS_CHANGED,
        "Account Status Updated",
        f"Your account status has been updated to {new_status}",
        userId=user.id,
        newStatus=new_status,
        changedBy=changed_by,
        updatedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(user.id))
    await router.deliver(
        event.with_text("User Status Change", f"User {user.name} status changed to {new_status}"),
        Target.admins(),
    )


# ---------------------------------------------------------------------------
# Booking lifecycle
# ---------------------------------------------------------------------------


async def notify_booking_created(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.BOOKING_CREATED,
        "New Booking Created",
        f"New booking for {booking.service.name}",
        bookingId=booking.id,
        customerId=booking.customer_id,
        customerName=booking.customer.name,
        serviceName=booking.service.name,
        scheduledAt=booking.scheduled_at,
        amount=booking.final_amount,
    )
    await router.deliver(
        event.with_text(
            "Booking Confirmed",
            f"Your booking for {booking.service.name} has been created successfully",
        ),
        Target.user(booking.customer_id),
    )
    await router.deliver(event, Target.admins())


async def notify_booking_status_change(router: NotificationRouter, booking, new_status: str) -> None:
    event = _event(
        NotificationType.BOOKING_STATUS_CHANGED,
        "Booking Status Updated",
        f"Your booking status has been updated to {new_status}",
        bookingId=booking.id,
        newStatus=new_status,
        serviceName=booking.service.name,
        scheduledAt=booking.scheduled_at,
    )
    await router.deliver(event, Target.user(booking.customer_id))
    if booking.maid_id:
        await router.deliver(
            event.with_text("Service Status Updated", f"Service status updated to {new_status}"),
            Target.user(booking.maid_id),
        )
    await router.deliver(
        event.with_text(
            "Booking Status Change", f"Booking {booking.id} status changed to {new_status}"
        ),
        Target.admins(),
    )


async def notify_booking_cancellation(router: NotificationRouter, booking, reason: str) -> None:
    event = _event(
        NotificationType.BOOKING_CANCELLED,
        "Booking Cancelled",
        f"Your booking for {booking.service.name} has been cancelled",
        bookingId=booking.id,
        serviceName=booking.service.name,
        reason=reason,
        scheduledAt=booking.scheduled_at,
        cancelledAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(booking.customer_id))
    if booking.maid_id:
        await router.deliver(
            event.with_text(
                "Service Cancelled",
                f"Service assignment cancelled for {booking.service.name}",
            ),
            Target.user(booking.maid_id),
        )
    await router.deliver(
        event.with_text("Booking Cancellation", f"Booking {booking.id} cancelled - {reason}"),
        Target.admins(),
    )


async def notify_booking_rescheduled(
    router: NotificationRouter, booking, old_date: datetime, new_date: datetime
) -> None:
    new_day = new_date.strftime("%d/%m/%Y")
    event = _event(
        NotificationType.BOOKING_RESCHEDULED,
        "Booking Rescheduled",
        f"Your booking has been rescheduled to {new_day}",
        bookingId=booking.id,
        serviceName=booking.service.name,
        oldDate=old_date,
        newDate=new_date,
        rescheduledAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(booking.customer_id))
    if booking.maid_id:
        await router.deliver(
            event.with_text("Service Rescheduled", f"Service rescheduled to {new_day}"),
            Target.user(booking.maid_id),
        )
    await router.deliver(
        event.with_text("Booking Rescheduled", f"Booking {booking.id} rescheduled"),
        Target.admins(),
    )


async def notify_booking_reminder(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.BOOKING_REMINDER,
        "Service Reminder",
        f"Your {booking.service.name} service is scheduled for tomorrow",
        bookingId=booking.id,
        serviceName=booking.service.name,
        scheduledAt=booking.scheduled_at,
        maidName=booking.maid.name if booking.maid else None,
    )
    await router.deliver(event, Target.user(booking.customer_id))
    if booking.maid_id:
        await router.deliver(
            event.with_text(
                "Service Reminder",
                f"You have a service scheduled for tomorrow: {booking.service.name}",
            ),
            Target.user(booking.maid_id),
        )


async def notify_maid_assigned(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.MAID_ASSIGNED,
        "Maid Assigned",
        f"{booking.maid.name} has been assigned to your booking",
        bookingId=booking.id,
        maidId=booking.maid_id,
        maidName=booking.maid.name,
        serviceName=booking.service.name,
        scheduledAt=booking.scheduled_at,
        customerAddress=booking.service_address,
    )
    await router.deliver(event, Target.user(booking.customer_id))
    await router.deliver(
        event.with_text(
            "New Service Assignment",
            f"You have been assigned to a new service: {booking.service.name}",
        ),
        Target.user(booking.maid_id),
    )
    await router.deliver(
        event.with_text(
            "Maid Assignment Completed", f"{booking.maid.name} assigned to booking {booking.id}"
        ),
        Target.admins(),
    )


async def notify_maid_arrival(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.MAID_ARRIVED,
        "Maid Arrived",
        f"{booking.maid.name} has arrived at your location",
        bookingId=booking.id,
        maidName=booking.maid.name,
        arrivedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(booking.customer_id))


async def notify_maid_running_late(
    router: NotificationRouter, booking, estimated_delay: int
) -> None:
    event = _event(
        NotificationType.MAID_RUNNING_LATE,
        "Maid Running Late",
        f"{booking.maid.name} is running {estimated_delay} minutes late",
        bookingId=booking.id,
        maidName=booking.maid.name,
        estimatedDelay=estimated_delay,
        updatedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(booking.customer_id))
    await router.deliver(
        event.with_text(
            "Maid Delay Alert", f"{booking.maid.name} running late for booking {booking.id}"
        ),
        Target.admins(),
    )


async def notify_service_started(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.SERVICE_STARTED,
        "Service Started",
        f"Your {booking.service.name} service has started",
        bookingId=booking.id,
        serviceName=booking.service.name,
        maidName=booking.maid.name,
        startedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(booking.customer_id))
    await router.deliver(
        event.with_text("Service Started", f"Service started by {booking.maid.name}"),
        Target.admins(),
    )


async def notify_service_completed(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.SERVICE_COMPLETED,
        "Service Completed",
        f"Your {booking.service.name} service has been completed",
        bookingId=booking.id,
        maidId=booking.maid_id,
        maidName=booking.maid.name,
        serviceName=booking.service.name,
        completedAt=booking.completed_at,
    )
    await router.deliver(event, Target.user(booking.customer_id))
    await router.deliver(
        event.with_text(
            "Service Completion Notification",
            f"Service completed by {booking.maid.name} for booking {booking.id}",
        ),
        Target.admins(),
    )


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


async def notify_payment_received(router: NotificationRouter, payment) -> None:
    event = _event(
        NotificationType.PAYMENT_RECEIVED,
        "Payment Received",
        f"Payment of ₹{payment.final_amount} received successfully",
        paymentId=payment.id,
        amount=payment.final_amount,
        paymentMethod=payment.payment_method,
        bookingId=payment.booking_id,
        subscriptionId=payment.subscription_id,
    )
    await router.deliver(event, Target.user(payment.customer_id))
    await router.deliver(
        event.with_text(
            "Payment Confirmation", f"Payment of ₹{payment.final_amount} received from customer"
        ),
        Target.admins(),
    )


async def notify_payment_failed(router: NotificationRouter, payment) -> None:
    event = _event(
        NotificationType.PAYMENT_FAILED,
        "Payment Failed",
        f"Payment of ₹{payment.final_amount} failed. Please try again.",
        paymentId=payment.id,
        amount=payment.final_amount,
        paymentMethod=payment.payment_method,
        bookingId=payment.booking_id,
    )
    await router.deliver(event, Target.user(payment.customer_id))
    await router.deliver(
        event.with_text(
            "Payment Failure Alert", f"Payment failure for customer {payment.customer_id}"
        ),
        Target.admins(),
    )


async def notify_payment_reminder(router: NotificationRouter, booking) -> None:
    event = _event(
        NotificationType.PAYMENT_REMINDER,
        "Payment Reminder",
        f"Payment pending for your {booking.service.name} booking",
        bookingId=booking.id,
        serviceName=booking.service.name,
        amount=booking.final_amount,
        dueDate=booking.scheduled_at,
    )
    await router.deliver(event, Target.user(booking.customer_id))


async def notify_refund_processed(router: NotificationRouter, payment, refund_amount: float) -> None:
    event = _event(
        NotificationType.REFUND_PROCESSED,
        "Refund Processed",
        f"Refund of ₹{refund_amount} has been processed",
        paymentId=payment.id,
        refundAmount=refund_amount,
        originalAmount=payment.final_amount,
        processedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(payment.customer_id))
    await router.deliver(
        event.with_text("Refund Processed", f"Refund of ₹{refund_amount} processed for customer"),
        Target.admins(),
    )


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


async def notify_subscription_created(router: NotificationRouter, subscription) -> None:
    event = _event(
        NotificationType.SUBSCRIPTION_CREATED,
        "Subscription Activated",
        f"Your {subscription.plan.name} subscription is now active",
        subscriptionId=subscription.id,
        planName=subscription.plan.name,
        startDate=subscription.start_date,
        endDate=subscription.end_date,
        amount=subscription.amount,
    )
    await router.deliver(event, Target.user(subscription.customer_id))
    await router.deliver(
        event.with_text("New Subscription", f"New subscription created: {subscription.plan.name}"),
        Target.admins(),
    )


async def notify_subscription_expiring(
    router: NotificationRouter, subscription, days_left: int
) -> None:
    event = _event(
        NotificationType.SUBSCRIPTION_EXPIRING,
        "Subscription Expiring",
        f"Your {subscription.plan.name} subscription expires in {days_left} days",
        subscriptionId=subscription.id,
        planName=subscription.plan.name,
        endDate=subscription.end_date,
        daysLeft=days_left,
    )
    await router.deliver(event, Target.user(subscription.customer_id))


async def notify_subscription_renewed(router: NotificationRouter, subscription) -> None:
    event = _event(
        NotificationType.SUBSCRIPTION_RENEWED,
        "Subscription Renewed",
        f"Your {subscription.plan.name} subscription has been renewed",
        subscriptionId=subscription.id,
        planName=subscription.plan.name,
        newEndDate=subscription.end_date,
        renewedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(subscription.customer_id))
    await router.deliver(
        event.with_text("Subscription Renewal", f"Subscription renewed: {subscription.plan.name}"),
        Target.admins(),
    )


async def notify_subscription_cancelled(
    router: NotificationRouter, subscription, reason: str
) -> None:
    event = _event(
        NotificationType.SUBSCRIPTION_CANCELLED,
        "Subscription Cancelled",
        f"Your {subscription.plan.name} subscription has been cancelled",
        subscriptionId=subscription.id,
        planName=subscription.plan.name,
        reason=reason,
        cancelledAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(subscription.customer_id))
    await router.deliver(
        event.with_text(
            "Subscription Cancellation",
            f"Subscription cancelled: {subscription.plan.name} - {reason}",
        ),
        Target.admins(),
    )


# ---------------------------------------------------------------------------
# Issues and feedback
# ---------------------------------------------------------------------------


async def notify_issue_reported(
    router: NotificationRouter,
    issue_id: int,
    issue_type: str,
    title: str,
    reported_by: int,
    priority: Optional[str] = None,
    booking=None,
) -> None:
    event = _event(
        NotificationType.ISSUE_REPORTED,
        "Issue Reported",
        f"Issue reported: {title}",
        issueId=issue_id,
        issueType=issue_type,
        issueTitle=title,
        priority=priority,
        bookingId=booking.id if booking else None,
        reportedBy=reported_by,
    )
    await router.deliver(event, Target.admins())
    if booking is not None and booking.maid_id:
        await router.deliver(
            event.with_text(
                "Issue Reported for Your Service",
                "An issue has been reported for your recent service",
            ),
            Target.user(booking.maid_id),
        )


async def notify_issue_resolved(
    router: NotificationRouter,
    issue_id: int,
    title: str,
    reported_by: int,
    resolution: Optional[str] = None,
    resolved_at: Optional[datetime] = None,
) -> None:
    event = _event(
        NotificationType.ISSUE_RESOLVED,
        "Issue Resolved",
        f"Your reported issue has been resolved: {title}",
        issueId=issue_id,
        issueTitle=title,
        resolution=resolution,
        resolvedAt=resolved_at,
    )
    await router.deliver(event, Target.user(reported_by))
    await router.deliver(
        event.with_text("Issue Resolution", f"Issue resolved: {title}"),
        Target.admins(),
    )


async def notify_feedback_received(
    router: NotificationRouter,
    feedback_id: int,
    rating: float,
    comment: Optional[str] = None,
    booking=None,
) -> None:
    event = _event(
        NotificationType.FEEDBACK_RECEIVED,
        "Feedback Received",
        f"New feedback received with {rating} star rating",
        feedbackId=feedback_id,
        bookingId=booking.id if booking else None,
        rating=rating,
        comment=comment,
    )
    await router.deliver(event, Target.admins())
    if booking is not None and booking.maid_id:
        await router.deliver(
            event.with_text("New Feedback", f"You received {rating} star rating for your service"),
            Target.user(booking.maid_id),
        )


# ---------------------------------------------------------------------------
# Maid operations
# ---------------------------------------------------------------------------


async def notify_maid_status_change(router: NotificationRouter, maid, new_status: str) -> None:
    event = _event(
        NotificationType.MAID_STATUS_CHANGED,
        "Status Updated",
        f"Your status has been updated to {new_status}",
        maidId=maid.id,
        newStatus=new_status,
        updatedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(maid.user_id))
    await router.deliver(
        event.with_text("Maid Status Update", f"{maid.user.name} status changed to {new_status}"),
        Target.admins(),
    )


async def notify_maid_document_verified(
    router: NotificationRouter, maid, document_type: str, status: str
) -> None:
    event = _event(
        NotificationType.DOCUMENT_VERIFIED,
        "Document Verification",
        f"Your {document_type} document has been {status}",
        maidId=maid.id,
        documentType=document_type,
        status=status,
        verifiedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(maid.user_id))


async def notify_maid_performance_alert(
    router: NotificationRouter, maid, alert_type: str, details: dict[str, Any]
) -> None:
    event = _event(
        NotificationType.PERFORMANCE_ALERT,
        "Performance Alert",
        f"Performance alert: {alert_type}",
        maidId=maid.id,
        alertType=alert_type,
        details=details,
        alertedAt=isoformat_utc(),
    )
    await router.deliver(event, Target.user(maid.user_id))
    await router.deliver(
        event.with_text(
            "Maid Performance Alert", f"Performance alert for {maid.user.name}: {alert_type}"
        ),
        Target.admins(),
    )


async def notify_attendance_alert(
    router: NotificationRouter, maid, alert_type: str, day: Optional[date] = None
) -> None:
    event = _event(
        NotificationType.ATTENDANCE_ALERT,
        "Attendance Alert",
        f"Attendance alert: {alert_type}",
        maidId=maid.id,
        alertType=alert_type,
        date=day or utcnow().date(),
    )
    await router.deliver(event, Target.user(maid.user_id))
    await router.deliver(
        event.with_text(
            "Maid Attendance Alert", f"Attendance alert for {maid.user.name}: {alert_type}"
        ),
        Target.admins(),
    )


async def notify_maid_shift_reminder(
    router: NotificationRouter,
    maid,
    shift_start: datetime,
    shift_end: datetime,
    location: Optional[str] = None,
) -> None:
    event = _event(
        NotificationType.SHIFT_REMINDER,
        "Shift Reminder",
        "Your shift starts in 30 minutes",
        maidId=maid.id,
        shiftStart=shift_start,
        shiftEnd=shift_end,
        location=location,
    )
    await router.deliver(event, Target.user(maid.user_id))


# ---------------------------------------------------------------------------
# System-wide
# ---------------------------------------------------------------------------


async def notify_system_maintenance(
    router: NotificationRouter, start_time: str, end_time: str, description: str
):
    event = _event(
        NotificationType.SYSTEM_MAINTENANCE,
        "System Maintenance",
        f"Scheduled maintenance: {start_time} - {end_time}",
        startTime=start_time,
        endTime=end_time,
        description=description,
    )
    return await router.deliver(event, Target.everyone())


async def notify_emergency_alert(
    router: NotificationRouter, alert_type: str, message: str, priority: str = "HIGH"
):
    event = _event(
        NotificationType.EMERGENCY_ALERT,
        "Emergency Alert",
        message,
        alertType=alert_type,
        priority=priority,
        issuedAt=isoformat_utc(),
    )
    return await router.deliver(event, Target.everyone())


async def notify_new_service_available(router: NotificationRouter, service):
    event = _event(
        NotificationType.NEW_SERVICE_AVAILABLE,
        "New Service Available",
        f"New service available: {service.name}",
        serviceId=service.id,
        serviceName=service.name,
        description=service.description,
        price=service.base_price,
    )
    return await router.deliver(event, Target.role(RoleClass.CUSTOMER))


async def notify_promotional_offer(
    router: NotificationRouter,
    offer_id: Any,
    message: str,
    discount_percent: Optional[float] = None,
    valid_until: Optional[datetime] = None,
    terms: Optional[str] = None,
):
    event = _event(
        NotificationType.PROMOTIONAL_OFFER,
        "Special Offer",
        message,
        offerId=offer_id,
        discountPercent=discount_percent,
        validUntil=valid_until,
        terms=terms,
    )
    return await router.deliver(event, Target.role(RoleClass.CUSTOMER))
