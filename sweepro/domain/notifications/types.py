"""Closed tag sets for roles, role-classes, notification types and delivery targets"""

import enum
from dataclasses import dataclass
from typing import Optional


class Role(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    MAID = "MAID"
    FLOATING_MAID = "FLOATING_MAID"
    ADMIN = "ADMIN"
    SUPERVISOR = "SUPERVISOR"


class RoleClass(str, enum.Enum):
    """Coarse grouping used for group addressing"""

    CUSTOMER = "customer"
    MAID = "maid"
    ADMIN = "admin"

    @classmethod
    def of(cls, role: Role) -> "RoleClass":
        if role is Role.CUSTOMER:
            return cls.CUSTOMER
        if role in (Role.MAID, Role.FLOATING_MAID):
            return cls.MAID
        if role in (Role.ADMIN, Role.SUPERVISOR):
            return cls.ADMIN
        raise ValueError(f"Unknown role: {role}")

    @property
    def roles(self) -> tuple[Role, ...]:
        return ROLE_CLASS_MEMBERS[self]


ROLE_CLASS_MEMBERS: dict[RoleClass, tuple[Role, ...]] = {
    RoleClass.CUSTOMER: (Role.CUSTOMER,),
    RoleClass.MAID: (Role.MAID, Role.FLOATING_MAID),
    RoleClass.ADMIN: (Role.ADMIN, Role.SUPERVISOR),
}


class NotificationType(str, enum.Enum):
    # Account
    USER_REGISTERED = "USER_REGISTERED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    USER_STATUS_CHANGED = "USER_STATUS_CHANGED"
    # Booking lifecycle
    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_STATUS_CHANGED = "BOOKING_STATUS_CHANGED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_RESCHEDULED = "BOOKING_RESCHEDULED"
    BOOKING_REMINDER = "BOOKING_REMINDER"
    MAID_ASSIGNED = "MAID_ASSIGNED"
    MAID_ARRIVED = "MAID_ARRIVED"
    MAID_RUNNING_LATE = "MAID_RUNNING_LATE"
    SERVICE_STARTED = "SERVICE_STARTED"
    SERVICE_COMPLETED = "SERVICE_COMPLETED"
    # Payment lifecycle
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_REMINDER = "PAYMENT_REMINDER"
    REFUND_PROCESSED = "REFUND_PROCESSED"
    # Subscription lifecycle
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_EXPIRING = "SUBSCRIPTION_EXPIRING"
    SUBSCRIPTION_RENEWED = "SUBSCRIPTION_RENEWED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    # Issues and feedback
    ISSUE_REPORTED = "ISSUE_REPORTED"
    ISSUE_RESOLVED = "ISSUE_RESOLVED"
    FEEDBACK_RECEIVED = "FEEDBACK_RECEIVED"
    # Maid operations
    MAID_STATUS_CHANGED = "MAID_STATUS_CHANGED"
    DOCUMENT_VERIFIED = "DOCUMENT_VERIFIED"
    PERFORMANCE_ALERT = "PERFORMANCE_ALERT"
    ATTENDANCE_ALERT = "ATTENDANCE_ALERT"
    SHIFT_REMINDER = "SHIFT_REMINDER"
    # System / administrative
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    EMERGENCY_ALERT = "EMERGENCY_ALERT"
    NEW_SERVICE_AVAILABLE = "NEW_SERVICE_AVAILABLE"
    PROMOTIONAL_OFFER = "PROMOTIONAL_OFFER"
    SYSTEM_ALERT = "SYSTEM_ALERT"


NOTIFICATION_TYPE_DESCRIPTIONS: dict[NotificationType, str] = {
    NotificationType.USER_REGISTERED: "User registration notification",
    NotificationType.PROFILE_UPDATED: "Profile updated",
    NotificationType.USER_STATUS_CHANGED: "User status changed",
    NotificationType.BOOKING_CREATED: "New booking created",
    NotificationType.BOOKING_CONFIRMED: "Booking confirmed",
    NotificationType.BOOKING_STATUS_CHANGED: "Booking status changed",
    NotificationType.BOOKING_CANCELLED: "Booking cancelled",
    NotificationType.BOOKING_RESCHEDULED: "Booking rescheduled",
    NotificationType.BOOKING_REMINDER: "Booking reminder",
    NotificationType.MAID_ASSIGNED: "Maid assigned to booking",
    NotificationType.MAID_ARRIVED: "Maid arrived at location",
    NotificationType.MAID_RUNNING_LATE: "Maid running late",
    NotificationType.SERVICE_STARTED: "Service started",
    NotificationType.SERVICE_COMPLETED: "Service completed",
    NotificationType.PAYMENT_RECEIVED: "Payment received successfully",
    NotificationType.PAYMENT_FAILED: "Payment failed",
    NotificationType.PAYMENT_REMINDER: "Payment reminder",
    NotificationType.REFUND_PROCESSED: "Refund processed",
    NotificationType.SUBSCRIPTION_CREATED: "New subscription created",
    NotificationType.SUBSCRIPTION_EXPIRING: "Subscription expiring soon",
    NotificationType.SUBSCRIPTION_RENEWED: "Subscription renewed",
    NotificationType.SUBSCRIPTION_CANCELLED: "Subscription cancelled",
    NotificationType.ISSUE_REPORTED: "Issue reported",
    NotificationType.ISSUE_RESOLVED: "Issue resolved",
    NotificationType.FEEDBACK_RECEIVED: "Feedback received",
    NotificationType.MAID_STATUS_CHANGED: "Maid status changed",
    NotificationType.DOCUMENT_VERIFIED: "Document verified",
    NotificationType.PERFORMANCE_ALERT: "Performance alert",
    NotificationType.ATTENDANCE_ALERT: "Attendance alert",
    NotificationType.SHIFT_REMINDER: "Shift reminder",
    NotificationType.SYSTEM_MAINTENANCE: "System maintenance",
    NotificationType.EMERGENCY_ALERT: "Emergency alert",
    NotificationType.NEW_SERVICE_AVAILABLE: "New service available",
    NotificationType.PROMOTIONAL_OFFER: "Promotional offer",
    NotificationType.SYSTEM_ALERT: "System alert",
}


class TargetKind(str, enum.Enum):
    USER = "user"
    ROLE_CLASS = "role_class"
    EVERYONE = "everyone"


@dataclass(frozen=True)
class Target:
    """Where an event goes: one identity, a whole role-class, or every live channel"""

    kind: TargetKind
    user_id: Optional[int] = None
    role_class: Optional[RoleClass] = None

    @classmethod
    def user(cls, user_id: int) -> "Target":
        return cls(kind=TargetKind.USER, user_id=user_id)

    @classmethod
    def role(cls, role_class: RoleClass) -> "Target":
        return cls(kind=TargetKind.ROLE_CLASS, role_class=role_class)

    @classmethod
    def admins(cls) -> "Target":
        return cls.role(RoleClass.ADMIN)

    @classmethod
    def everyone(cls) -> "Target":
        return cls(kind=TargetKind.EVERYONE)

    def __str__(self) -> str:
        if self.kind is TargetKind.USER:
            return f"user:{self.user_id}"
        if self.kind is TargetKind.ROLE_CLASS:
            return f"role:{self.role_class.value}"
        return "everyone"
