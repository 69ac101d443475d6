"""Background job tasks"""

import asyncio
import structlog

from app.jobs.celery_app import celery_app

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    from app.database import engine

    async def _run():
        try:
            return await coro
        finally:
            # Pooled connections belong to this loop
            await engine.dispose()

    return asyncio.run(_run())


async def _expire_overdue(session_factory=None, **service_options) -> dict:
    from app.database import SessionLocal
    from app.services.reservations import ReservationService

    async with (session_factory or SessionLocal)() as db:
        return await ReservationService(db, **service_options).expire_overdue()


async def _send_reminders(session_factory=None, **service_options) -> int:
    from app.database import SessionLocal
    from app.services.notifications import SmsNotifier
    from app.services.reservations import ReservationService

    service_options.setdefault("notifier", SmsNotifier())
    async with (session_factory or SessionLocal)() as db:
        return await ReservationService(db, **service_options).send_reminders()


async def _deliver_notification(reservation_id: int, kind: str, session_factory=None) -> bool:
    from app.database import SessionLocal
    from app.repositories import ReservationRepository
    from app.services.notifications import render_message, send_sms

    async with (session_factory or SessionLocal)() as db:
        reservation = await ReservationRepository(db).get(reservation_id)
        if not reservation:
            logger.warning("Notification for unknown reservation", reservation_id=reservation_id)
            return False
        return send_sms(reservation.customer_phone, render_message(kind, reservation), reservation.id)


@celery_app.task(name="expire_overdue_reservations")
def expire_overdue_reservations():
    """Mark no-shows and drop unconfirmed bookings past the grace period"""
    logger.info("Expiring overdue reservations")
    return run_async(_expire_overdue())


@celery_app.task(name="send_reservation_reminders")
def send_reservation_reminders():
    """Send reminders for upcoming reservations"""
    logger.info("Sending reservation reminders")
    return run_async(_send_reminders())


@celery_app.task(name="send_reservation_notification")
def send_reservation_notification(reservation_id: int, kind: str):
    """Deliver one confirmation or cancellation SMS"""
    logger.info("Sending reservation notification", reservation_id=reservation_id, kind=kind)
    return run_async(_deliver_notification(reservation_id, kind))
