import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_events.core.timeutils import utcnow
from campus_events.models.events import Event
from campus_events.models.registrations import ACTIVE_STATUSES, Registration, RegistrationStatus
from campus_events.services.errors import (
    AlreadyApprovedError,
    DuplicateRegistrationError,
    InvalidTicketError,
    InvalidTransitionError,
    NotFoundError,
    RegistrationDeniedError,
    ValidationError,
)
from campus_events.services.ledger import (
    claim_seat,
    evaluate_registration,
    registration_counts,
    resync_event_counts,
)
from campus_events.services.locking import event_lock
from campus_events.services.notifications import Outbox
from campus_events.services.tickets import apply_ticket, verify_checkin_token
from campus_events.services.unit_of_work import unit_of_work
from campus_events.services.waitlist import leave_waitlist, next_waitlist_position, promote_next

logger = logging.getLogger(__name__)

APPROVED = RegistrationStatus.APPROVED.value
PENDING = RegistrationStatus.PENDING.value
WAITLIST = RegistrationStatus.WAITLIST.value
REJECTED = RegistrationStatus.REJECTED.value
CANCELLED = RegistrationStatus.CANCELLED.value


def get_event_for_update(db: Session, event_id: int) -> Event:
    event = db.scalars(
        select(Event)
        .where(Event.id == event_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if event is None:
        raise NotFoundError("Event not found")
    return event


def _get_registration_for_update(db: Session, registration_id: int) -> Registration:
    registration = db.scalars(
        select(Registration)
        .where(Registration.id == registration_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


def _event_id_of(db: Session, registration_id: int) -> int:
    # Read before taking the lock; the row is read again once it is held
    event_id = db.scalar(select(Registration.event_id).where(Registration.id == registration_id))
    if event_id is None:
        raise NotFoundError("Registration not found")
    return event_id


def get_registration(db: Session, registration_id: int) -> Registration:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


def create_registration(
    db: Session,
    *,
    event_id: int,
    participant_id: int,
    participant_email: Optional[str] = None,
    additional_info: Optional[dict] = None,
) -> Registration:
    """
    Register a participant, landing in approved, waitlist or pending.

    The event lock is held for the whole unit of work, so two attempts on the
    last seat are decided one after the other against committed state.
    """
    outbox = Outbox()
    with event_lock(event_id), unit_of_work(db):
        event = get_event_for_update(db, event_id)

        existing = db.scalars(
            select(Registration).where(
                Registration.event_id == event_id,
                Registration.participant_id == participant_id,
            )
        ).first()
        if existing is not None and existing.status != CANCELLED:
            raise DuplicateRegistrationError()

        resync_event_counts(db, event)
        admission = evaluate_registration(event)
        if not admission.can_register:
            raise RegistrationDeniedError(admission.reason)

        # A cancelled row is reused so (event, participant) stays unique
        registration = existing or Registration(event_id=event_id, participant_id=participant_id)
        registration.participant_email = participant_email or registration.participant_email
        registration.additional_info = additional_info or {}
        registration.attended = False
        registration.check_in_time = None
        registration.clear_ticket()

        if admission.waitlist:
            registration.status = WAITLIST
            registration.waitlist_position = next_waitlist_position(db, event_id)
        elif event.auto_approve_registrations:
            claim_seat(db, event)
            registration.status = APPROVED
            registration.waitlist_position = None
        else:
            registration.status = PENDING
            registration.waitlist_position = None

        if existing is None:
            db.add(registration)
        db.flush()

        if registration.status == APPROVED and not apply_ticket(event, registration):
            outbox.reissue_ticket(registration.id)
        resync_event_counts(db, event)

        logger.info(
            "Participant %s registered for event %s as %s", participant_id, event_id, registration.status
        )
        _queue_created(outbox, event, registration)

    outbox.flush()
    return registration


def _queue_created(outbox: Outbox, event: Event, registration: Registration) -> None:
    data = {
        "event_id": event.id,
        "event_title": event.title,
        "registration_id": registration.id,
        "status": registration.status,
    }
    if registration.status == APPROVED:
        outbox.email("registration_approved", [registration.participant_email], data)
    elif registration.status == WAITLIST:
        outbox.email(
            "registration_waitlisted",
            [registration.participant_email],
            {**data, "waitlist_position": registration.waitlist_position},
        )
    else:
        outbox.email("registration_new", [event.organizer_email], data)

    outbox.notify(
        event.organizer_id,
        type="registration",
        title="New Registration",
        message=f"Participant {registration.participant_id} has registered for your event: {event.title}",
        data=data,
        priority="medium",
    )


def approve_registration(db: Session, registration_id: int) -> Registration:
    outbox = Outbox()
    event_id = _event_id_of(db, registration_id)
    with event_lock(event_id), unit_of_work(db):
        registration = _get_registration_for_update(db, registration_id)
        event = get_event_for_update(db, registration.event_id)

        if registration.status == APPROVED:
            raise AlreadyApprovedError()
        if registration.status not in (PENDING, WAITLIST):
            raise InvalidTransitionError(f"Cannot approve a {registration.status} registration")

        resync_event_counts(db, event)
        # Re-checked on the locked row: the seat seen when the participant registered may be gone
        claim_seat(db, event)

        if registration.status == WAITLIST:
            leave_waitlist(db, registration, APPROVED)
        else:
            registration.status = APPROVED
        db.flush()

        if not apply_ticket(event, registration):
            outbox.reissue_ticket(registration.id)
        resync_event_counts(db, event)

        logger.info("Registration %s approved for event %s", registration.id, event.id)
        data = {"event_id": event.id, "event_title": event.title, "registration_id": registration.id}
        outbox.email("registration_approved", [registration.participant_email], data)
        outbox.notify(
            registration.participant_id,
            type="registration",
            title="Registration Approved",
            message=f"Your registration for {event.title} has been approved",
            data=data,
            priority="high",
        )

    outbox.flush()
    return registration


def _vacate(db: Session, event: Event, registration: Registration, new_status: str, outbox: Outbox) -> None:
    """Move an active registration out, releasing its seat or waitlist rank."""
    previous = registration.status
    if previous not in ACTIVE_STATUSES:
        raise InvalidTransitionError(f"Cannot move a {previous} registration to {new_status}")

    if previous == WAITLIST:
        leave_waitlist(db, registration, new_status)
    else:
        registration.status = new_status
        registration.waitlist_position = None
    if previous == APPROVED:
        registration.clear_ticket()
    db.flush()
    resync_event_counts(db, event)

    if previous == APPROVED and event.waitlist_enabled and event.current_waitlisted > 0:
        promote_next(db, event, outbox)


def reject_registration(db: Session, registration_id: int) -> Registration:
    outbox = Outbox()
    event_id = _event_id_of(db, registration_id)
    with event_lock(event_id), unit_of_work(db):
        registration = _get_registration_for_update(db, registration_id)
        event = get_event_for_update(db, registration.event_id)
        _vacate(db, event, registration, REJECTED, outbox)

        logger.info("Registration %s rejected for event %s", registration.id, event.id)
        data = {"event_id": event.id, "event_title": event.title, "registration_id": registration.id}
        outbox.email("registration_rejected", [registration.participant_email], data)
        outbox.notify(
            registration.participant_id,
            type="registration",
            title="Registration Rejected",
            message=f"Your registration for {event.title} has been rejected",
            data=data,
            priority="medium",
        )

    outbox.flush()
    return registration


def cancel_registration(db: Session, registration_id: int, participant_id: Optional[int] = None) -> Registration:
    """
    Cancel a registration on behalf of its owner or an organizer.

    With ``participant_id`` the registration must belong to that participant.
    """
    outbox = Outbox()
    event_id = _event_id_of(db, registration_id)
    with event_lock(event_id), unit_of_work(db):
        registration = _get_registration_for_update(db, registration_id)
        if participant_id is not None and registration.participant_id != participant_id:
            raise NotFoundError("Registration not found")
        event = get_event_for_update(db, registration.event_id)
        _vacate(db, event, registration, CANCELLED, outbox)
        logger.info("Registration %s cancelled for event %s", registration.id, event.id)

    outbox.flush()
    return registration


def reissue_ticket(db: Session, registration_id: int) -> bool:
    """Retry ticket issuance for an approved registration missing its ticket."""
    try:
        event_id = _event_id_of(db, registration_id)
    except NotFoundError:
        return False

    with event_lock(event_id), unit_of_work(db):
        registration = _get_registration_for_update(db, registration_id)
        if registration.status != APPROVED:
            return False
        if registration.has_ticket:
            return True
        event = get_event_for_update(db, registration.event_id)
        issued = apply_ticket(event, registration)
    return issued


def check_in(db: Session, token: str) -> Registration:
    claims = verify_checkin_token(token)
    with unit_of_work(db):
        registration = _get_registration_for_update(db, int(claims["sub"]))
        if registration.event_id != claims.get("evt"):
            raise InvalidTicketError("Invalid check-in token")
        if registration.status != APPROVED or registration.qr_token != token:
            raise InvalidTicketError("Ticket is no longer valid")
        if registration.attended:
            raise InvalidTicketError("Ticket has already been used")
        registration.attended = True
        registration.check_in_time = utcnow()
    return registration


def get_ticket(db: Session, registration_id: int, participant_id: Optional[int] = None) -> Registration:
    registration = get_registration(db, registration_id)
    if participant_id is not None and registration.participant_id != participant_id:
        raise NotFoundError("Registration not found")
    if registration.status != APPROVED:
        raise ValidationError("Ticket only available for approved registrations")
    if not registration.ics_ticket or not registration.qr_token:
        raise NotFoundError("Ticket not generated")
    return registration


def get_event_seats(db: Session, event_id: int) -> dict:
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")

    counts = registration_counts(db, event_id)
    admission = evaluate_registration(event)
    return {
        "event_id": event.id,
        "available_seats": max(event.max_seats - counts["approved"], 0),
        "max_seats": event.max_seats,
        "booked_seats": counts["approved"],
        "waitlisted_count": counts["waitlisted"],
        "pending_count": counts["pending"],
        "waitlist_enabled": event.waitlist_enabled,
        "max_waitlist": event.max_waitlist,
        "can_register": admission.can_register,
        "registration_message": admission.reason,
        "would_be_waitlisted": admission.waitlist,
    }


def get_waitlist_position(db: Session, event_id: int, participant_id: int) -> Registration:
    registration = db.scalars(
        select(Registration).where(
            Registration.event_id == event_id,
            Registration.participant_id == participant_id,
            Registration.status == WAITLIST,
        )
    ).first()
    if registration is None:
        raise NotFoundError("You are not on the waitlist for this event")
    return registration


def list_event_registrations(db: Session, event_id: int, status: Optional[str] = None) -> list[Registration]:
    if db.get(Event, event_id) is None:
        raise NotFoundError("Event not found")
    stmt = select(Registration).where(Registration.event_id == event_id)
    if status:
        stmt = stmt.where(Registration.status == status)
    return list(db.scalars(stmt.order_by(Registration.registered_on.desc(), Registration.id.desc())))


def list_participant_registrations(db: Session, participant_id: int) -> list[Registration]:
    return list(
        db.scalars(
            select(Registration)
            .where(Registration.participant_id == participant_id)
            .order_by(Registration.registered_on.desc(), Registration.id.desc())
        )
    )
