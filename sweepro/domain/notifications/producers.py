"""
Scheduled notification producers

Each producer queries the business tables, emits one event per qualifying
record through the event builders, and returns how many it emitted.
Producers keep no memory between runs: a re-run re-emits.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ... import config
from ...models import Attendance, Booking, MaidProfile, Payment, Subscription
from ...shared.timeutils import utcnow
from . import events
from .delivery import NotificationRouter

logger = logging.getLogger(__name__)

REMINDER_BOOKING_STATUSES = ("CONFIRMED", "ASSIGNED")


def _ceil_days(delta: timedelta) -> int:
    day = timedelta(days=1)
    return -((-delta) // day)


async def send_daily_booking_reminders(
    router: NotificationRouter, db: Session, now: Optional[datetime] = None
) -> int:
    """Remind customers and assigned maids about tomorrow's confirmed visits"""
    now = now or utcnow()
    tomorrow = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
    day_after = tomorrow + timedelta(days=1)

    bookings = (
        db.query(Booking)
        .options(
            joinedload(Booking.customer),
            joinedload(Booking.maid),
            joinedload(Booking.service),
        )
        .filter(
            Booking.scheduled_at >= tomorrow,
            Booking.scheduled_at < day_after,
            Booking.status.in_(REMINDER_BOOKING_STATUSES),
        )
        .order_by(Booking.scheduled_at, Booking.id)
        .all()
    )

    for booking in bookings:
        await events.notify_booking_reminder(router, booking)

    logger.info(f"📅 Sent {len(bookings)} booking reminders for {tomorrow.date()}")
    return len(bookings)


async def send_payment_reminders(
    router: NotificationRouter, db: Session, now: Optional[datetime] = None
) -> int:
    """Remind customers about payments left pending for longer than the reminder age"""
    now = now or utcnow()
    cutoff = now - timedelta(hours=config.PAYMENT_REMINDER_AGE_HOURS)

    payments = (
        db.query(Payment)
        .options(joinedload(Payment.booking).joinedload(Booking.service))
        .filter(Payment.status == "PENDING", Payment.created_at <= cutoff)
        .order_by(Payment.created_at, Payment.id)
        .all()
    )

    sent = 0
    for payment in payments:
        # Subscription payments have no booking to remind about
        if payment.booking is None:
            continue
        await events.notify_payment_reminder(router, payment.booking)
        sent += 1

    logger.info(f"💳 Sent {sent} payment reminders")
    return sent


async def send_subscription_expiry_reminders(
    router: NotificationRouter, db: Session, now: Optional[datetime] = None
) -> int:
    """Warn customers whose active subscription ends within the lookahead window"""
    now = now or utcnow()
    horizon = now + timedelta(days=config.SUBSCRIPTION_EXPIRY_LOOKAHEAD_DAYS)

    subscriptions = (
        db.query(Subscription)
        .options(joinedload(Subscription.plan), joinedload(Subscription.customer))
        .filter(
            Subscription.status == "ACTIVE",
            Subscription.end_date >= now,
            Subscription.end_date <= horizon,
        )
        .order_by(Subscription.end_date, Subscription.id)
        .all()
    )

    for subscription in subscriptions:
        days_left = _ceil_days(subscription.end_date - now)
        await events.notify_subscription_expiring(router, subscription, days_left)

    logger.info(f"⏳ Sent {len(subscriptions)} subscription expiry reminders")
    return len(subscriptions)


async def send_performance_alerts(
    router: NotificationRouter, db: Session, now: Optional[datetime] = None
) -> int:
    """
    Check the latest performance snapshot of every active maid.
    One alert per threshold crossed: low overall score, high cancellation ratio.
    """
    maids = (
        db.query(MaidProfile)
        .options(joinedload(MaidProfile.user), selectinload(MaidProfile.performance_metrics))
        .filter(MaidProfile.status == "ACTIVE")
        .order_by(MaidProfile.id)
        .all()
    )

    sent = 0
    for maid in maids:
        if not maid.performance_metrics:
            continue
        metrics = maid.performance_metrics[0]

        if metrics.overall_score < config.PERFORMANCE_SCORE_FLOOR:
            await events.notify_maid_performance_alert(
                router,
                maid,
                "LOW_PERFORMANCE",
                {"score": metrics.overall_score, "rating": metrics.average_rating},
            )
            sent += 1

        if metrics.total_bookings > 0 and metrics.cancelled_bookings > 0:
            cancellation_rate = metrics.cancelled_bookings / metrics.total_bookings
            if cancellation_rate > config.CANCELLATION_RATE_CEILING:
                await events.notify_maid_performance_alert(
                    router,
                    maid,
                    "HIGH_CANCELLATION_RATE",
                    {"cancellationRate": round(cancellation_rate * 100, 2)},
                )
                sent += 1

    logger.info(f"📉 Sent {sent} performance alerts across {len(maids)} active maids")
    return sent


async def send_attendance_alerts(
    router: NotificationRouter, db: Session, now: Optional[datetime] = None
) -> int:
    """Alert each maid marked ABSENT today, and the admins"""
    today = (now or utcnow()).date()

    records = (
        db.query(Attendance)
        .options(joinedload(Attendance.maid).joinedload(MaidProfile.user))
        .filter(Attendance.date == today, Attendance.status == "ABSENT")
        .order_by(Attendance.id)
        .all()
    )

    alerted = set()
    for record in records:
        if record.maid_id in alerted:
            continue
        alerted.add(record.maid_id)
        await events.notify_attendance_alert(router, record.maid, "ABSENT", day=today)

    logger.info(f"🗓️ Sent {len(alerted)} attendance alerts for {today}")
    return len(alerted)
