from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.timeutils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    # CUSTOMER, MAID, FLOATING_MAID, ADMIN, SUPERVISOR
    role = Column(String(20), nullable=False, default="CUSTOMER", index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    maid_profile = relationship("MaidProfile", back_populates="user", uselist=False)
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )


class Service(Base):
    """A cleaning service offered on the marketplace"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    maid_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    scheduled_at = Column(DateTime, nullable=False, index=True)
    # PENDING → CONFIRMED → ASSIGNED → IN_PROGRESS → COMPLETED, or CANCELLED
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    final_amount = Column(Float, nullable=True)
    service_address = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("User", foreign_keys=[customer_id])
    maid = relationship("User", foreign_keys=[maid_id])
    service = relationship("Service")
    payments = relationship("Payment", back_populates="booking")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)

    final_amount = Column(Float, nullable=False)
    payment_method = Column(String(50), nullable=True)  # card, upi, netbanking, cash
    # PENDING, COMPLETED, FAILED, REFUNDED
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    booking = relationship("Booking", back_populates="payments")


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    duration_days = Column(Integer, nullable=False, default=30)
    price = Column(Float, nullable=False, default=0.0)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)

    # ACTIVE, EXPIRED, CANCELLED
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)
    amount = Column(Float, nullable=True)

    customer = relationship("User")
    plan = relationship("SubscriptionPlan")


class MaidProfile(Base):
    __tablename__ = "maid_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    # ACTIVE, INACTIVE, ON_LEAVE, SUSPENDED
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="maid_profile")
    performance_metrics = relationship(
        "PerformanceMetric",
        back_populates="maid",
        order_by="PerformanceMetric.created_at.desc()",
    )
    attendance = relationship("Attendance", back_populates="maid")


class PerformanceMetric(Base):
    """Periodic performance snapshot for a maid"""

    __tablename__ = "performance_metrics"

    id = Column(Integer, primary_key=True, index=True)
    maid_id = Column(Integer, ForeignKey("maid_profiles.id"), nullable=False, index=True)
    overall_score = Column(Float, nullable=False, default=0.0)
    average_rating = Column(Float, nullable=True)
    total_bookings = Column(Integer, nullable=False, default=0)
    cancelled_bookings = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, index=True)

    maid = relationship("MaidProfile", back_populates="performance_metrics")


class Attendance(Base):
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    maid_id = Column(Integer, ForeignKey("maid_profiles.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    # PRESENT, ABSENT, LATE, ON_LEAVE
    status = Column(String(20), nullable=False, default="PRESENT")

    maid = relationship("MaidProfile", back_populates="attendance")
