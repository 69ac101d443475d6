"""Reservation notifications (best effort)"""

from typing import List, Tuple

from twilio.rest import Client as TwilioClient
import structlog

from app.config import settings
from app.models.reservation import Reservation

logger = structlog.get_logger()

CONFIRMED = "confirmed"
CANCELLED = "cancelled"
REMINDER = "reminder"


def render_message(kind: str, reservation: Reservation) -> str:
    """SMS body for a reservation event"""
    when = reservation.reservation_time.strftime("%A, %B %d at %I:%M %p")
    if kind == CONFIRMED:
        message = f"Your reservation {reservation.reservation_number} at {settings.restaurant_name} is confirmed! "
        message += f"{reservation.number_of_guests} guests on {when}."
    elif kind == CANCELLED:
        message = f"Your reservation {reservation.reservation_number} at {settings.restaurant_name} "
        message += f"on {when} has been cancelled."
        if reservation.cancel_reason:
            message += f" Reason: {reservation.cancel_reason}"
    elif kind == REMINDER:
        message = f"Reminder: Your reservation at {settings.restaurant_name} is coming up! "
        message += f"{reservation.number_of_guests} guests at "
        message += f"{reservation.reservation_time.strftime('%I:%M %p')}. See you soon!"
    else:
        raise ValueError(f"Unknown notification kind: {kind}")
    return message


class NotificationSink:
    """Receives reservation events after their transaction committed.

    Implementations must not raise: delivery problems are logged and dropped.
    """

    def notify(self, kind: str, reservation: Reservation) -> None:
        raise NotImplementedError


class SmsNotifier(NotificationSink):
    """Sends the message synchronously through Twilio"""

    def notify(self, kind: str, reservation: Reservation) -> None:
        send_sms(reservation.customer_phone, render_message(kind, reservation), reservation.id)


def send_sms(to: str, body: str, reservation_id: int = None) -> bool:
    """Send one SMS; returns False instead of raising on failure"""
    if not to:
        logger.info("No phone number for SMS", reservation_id=reservation_id)
        return False
    if not settings.notifications_enabled or not settings.twilio_account_sid:
        logger.info("SMS delivery disabled", reservation_id=reservation_id)
        return False
    try:
        client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        client.messages.create(
            body=body,
            from_=settings.twilio_phone_number,
            to=to,
        )
        logger.info("Sent reservation SMS", reservation_id=reservation_id, to=to[-4:])
        return True
    except Exception as e:
        logger.error("Failed to send reservation SMS", reservation_id=reservation_id, error=str(e))
        return False


class CeleryNotifier(NotificationSink):
    """Queues delivery on the worker so the request never waits on Twilio"""

    def notify(self, kind: str, reservation: Reservation) -> None:
        from app.jobs.tasks import send_reservation_notification

        try:
            send_reservation_notification.delay(reservation.id, kind)
        except Exception as e:
            logger.error(
                "Failed to queue reservation notification",
                reservation_id=reservation.id,
                kind=kind,
                error=str(e),
            )


class RecordingNotifier(NotificationSink):
    """Keeps events in memory; used when delivery is switched off and in tests"""

    def __init__(self):
        self.sent: List[Tuple[str, int]] = []

    def notify(self, kind: str, reservation: Reservation) -> None:
        self.sent.append((kind, reservation.id))


_notifier = CeleryNotifier()


def get_notifier() -> NotificationSink:
    """FastAPI dependency returning the process notifier"""
    return _notifier
