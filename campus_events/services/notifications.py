"""
Fire-and-forget side effects of lifecycle transitions.

Operations queue messages on an ``Outbox`` while their transaction is open
and call ``flush()`` only after commit, so a rolled back transition never
notifies anyone. Dispatch failures are logged and otherwise ignored.
"""
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from campus_events.core.config import MAIL_FROM, SMTP_HOST, SMTP_PASSWORD, SMTP_PORT, SMTP_USER
from campus_events.models.notifications import Notification, NotificationPriority

logger = logging.getLogger(__name__)

EMAIL_SUBJECTS = {
    "registration_approved": "Registration approved: {event_title}",
    "registration_waitlisted": "You're on the waitlist: {event_title}",
    "registration_new": "New registration for {event_title}",
    "registration_rejected": "Registration update: {event_title}",
    "waitlist_promoted": "A seat opened up: {event_title}",
    "event_approved": "Your event was approved: {event_title}",
    "event_rejected": "Your event was rejected: {event_title}",
    "event_cancelled": "Event cancelled: {event_title}",
}


def _dispatch(task, *args) -> None:
    try:
        task.delay(*args)
    except Exception:
        logger.warning("Could not dispatch %s", getattr(task, "name", task), exc_info=True)


class Outbox:
    def __init__(self):
        self._messages: list[tuple[Any, tuple]] = []

    def __len__(self) -> int:
        return len(self._messages)

    def notify(
        self,
        user_id: Optional[int],
        *,
        type: str,
        title: str,
        message: str,
        data: Optional[dict] = None,
        priority: str = NotificationPriority.MEDIUM.value,
    ) -> None:
        if user_id is None:
            return
        from campus_events.tasks import send_notification_task

        payload = {
            "type": type,
            "title": title,
            "message": message,
            "data": data or {},
            "priority": priority,
        }
        self._messages.append((send_notification_task, (user_id, payload)))

    def email(self, kind: str, recipients: Iterable[Optional[str]], data: dict) -> None:
        addresses = [r for r in recipients if r]
        if not addresses:
            return
        from campus_events.tasks import send_email_task

        self._messages.append((send_email_task, (kind, addresses, data)))

    def reissue_ticket(self, registration_id: int) -> None:
        from campus_events.tasks import reissue_ticket_task

        self._messages.append((reissue_ticket_task, (registration_id,)))

    def flush(self) -> None:
        messages, self._messages = self._messages, []
        for task, args in messages:
            _dispatch(task, *args)


def create_notification(db: Session, user_id: int, payload: dict) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=payload.get("type", "general"),
        title=payload["title"],
        message=payload["message"],
        data=payload.get("data") or {},
        priority=payload.get("priority", NotificationPriority.MEDIUM.value),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def render_email(kind: str, data: dict) -> EmailMessage:
    subject = EMAIL_SUBJECTS.get(kind, "Campus Events update: {event_title}")
    msg = EmailMessage()
    msg["From"] = MAIL_FROM
    msg["Subject"] = subject.format(event_title=data.get("event_title", "your event"))
    body = [f"{key.replace('_', ' ').capitalize()}: {value}" for key, value in sorted(data.items())]
    msg.set_content("Hello,\n\n" + "\n".join(body) + "\n\nCampus Events\n")
    return msg


def deliver_email(kind: str, recipients: list[str], data: dict) -> bool:
    """Send one message per recipient. Returns False when mail is not configured."""
    if not SMTP_HOST:
        logger.info("SMTP not configured, skipping %s email to %d recipient(s)", kind, len(recipients))
        return False

    with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
        server.starttls()
        if SMTP_USER:
            server.login(SMTP_USER, SMTP_PASSWORD)
        for address in recipients:
            msg = render_email(kind, data)
            msg["To"] = address
            server.send_message(msg)
    logger.info("Sent %s email to %d recipient(s)", kind, len(recipients))
    return True
