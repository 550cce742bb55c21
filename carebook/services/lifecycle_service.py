"""
Appointment lifecycle: status transitions, who may make them, and the
notification each one sends.

    pending -> confirmed -> completed
    pending | confirmed -> cancelled
    pending | confirmed -> pending   (reschedule, new interval)
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carebook.core.errors import ConflictError, ForbiddenError, InternalError, InvalidError, NotFoundError
from carebook.models.appointment import Appointment
from carebook.models.user import User
from carebook.scheduling import status as appointment_status
from carebook.scheduling.status import (
    ACTION_CANCEL,
    ACTION_COMPLETE,
    ACTION_CONFIRM,
    ACTION_RESCHEDULE,
    STATUS_ACTIONS,
    can_transition,
    target_status,
)
from carebook.services import notification_service
from carebook.services.booking_service import (
    SLOT_TAKEN_MESSAGE,
    appointment_duration,
    commit_appointment,
    find_overlapping_appointment,
    resolve_start_time,
)
from carebook.services.notification_service import NotificationDispatcher, notify

logger = logging.getLogger(__name__)

TRANSITION_NOTIFICATIONS = {
    ACTION_CONFIRM: notification_service.KIND_APPOINTMENT_CONFIRMED,
    ACTION_COMPLETE: notification_service.KIND_APPOINTMENT_COMPLETED,
    ACTION_RESCHEDULE: notification_service.KIND_APPOINTMENT_RESCHEDULED,
    ACTION_CANCEL: notification_service.KIND_CANCELLATION_NOTICE,
}

TRANSITION_LOG_LABELS = {
    ACTION_CONFIRM: 'confirmed',
    ACTION_COMPLETE: 'completed',
    ACTION_RESCHEDULE: 'rescheduled',
    ACTION_CANCEL: 'cancelled',
}

INVALID_TRANSITION_MESSAGES = {
    (ACTION_CANCEL, appointment_status.STATUS_CANCELLED): 'Appointment is already cancelled',
    (ACTION_CANCEL, appointment_status.STATUS_COMPLETED): 'Cannot cancel a completed appointment',
    (ACTION_RESCHEDULE, appointment_status.STATUS_CANCELLED): 'Cannot reschedule a cancelled appointment',
    (ACTION_RESCHEDULE, appointment_status.STATUS_COMPLETED): 'Cannot reschedule a completed appointment',
    (ACTION_CONFIRM, appointment_status.STATUS_CONFIRMED): 'Appointment is already confirmed',
    (ACTION_COMPLETE, appointment_status.STATUS_PENDING): 'Only confirmed appointments can be completed',
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_assigned_doctor(actor: User, appointment: Appointment) -> bool:
    return appointment.doctor is not None and appointment.doctor.user_id == actor.id


def is_owner(actor: User, appointment: Appointment) -> bool:
    return appointment.patient_id == actor.id


def can_view(actor: User, appointment: Appointment) -> bool:
    return actor.is_admin or is_owner(actor, appointment) or is_assigned_doctor(actor, appointment)


def can_perform(actor: User, appointment: Appointment, action: str) -> bool:
    if actor.is_admin or is_assigned_doctor(actor, appointment):
        return True
    # Patients may only move their own booking around or give it up.
    return action in (ACTION_CANCEL, ACTION_RESCHEDULE) and is_owner(actor, appointment)


def load_appointment(db: Session, appointment_id: int, for_update: bool = False) -> Appointment:
    try:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update()
        appointment = query.first()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to load appointment %s', appointment_id)
        raise InternalError('Failed to load appointment') from exc

    if appointment is None:
        raise NotFoundError('Appointment not found')
    return appointment


def get_appointment_for_actor(db: Session, appointment_id: int, actor: User) -> Appointment:
    appointment = load_appointment(db, appointment_id)
    if not can_view(actor, appointment):
        raise ForbiddenError('Access denied')
    return appointment


def _begin_transition(db: Session, appointment_id: int, actor: User, action: str) -> Appointment:
    appointment = load_appointment(db, appointment_id, for_update=True)

    if not can_perform(actor, appointment, action):
        db.rollback()
        raise ForbiddenError('Access denied')

    if not can_transition(action, appointment.status):
        db.rollback()
        message = INVALID_TRANSITION_MESSAGES.get(
            (action, appointment.status),
            f'Cannot {action} an appointment that is {appointment.status}',
        )
        raise InvalidError(message)

    return appointment


def _finish_transition(
    db: Session,
    appointment: Appointment,
    action: str,
    actor: User,
    notifier: NotificationDispatcher | None,
) -> Appointment:
    commit_appointment(db, action)
    db.refresh(appointment)
    logger.info('Appointment %s: %s by user %s', TRANSITION_LOG_LABELS[action], appointment.id, actor.id)
    notify(notifier, TRANSITION_NOTIFICATIONS[action], appointment)
    return appointment


def confirm_appointment(
    db: Session,
    appointment_id: int,
    actor: User,
    notifier: NotificationDispatcher | None = None,
) -> Appointment:
    appointment = _begin_transition(db, appointment_id, actor, ACTION_CONFIRM)
    appointment.status = target_status(ACTION_CONFIRM)
    appointment.confirmed_at = _now()
    return _finish_transition(db, appointment, ACTION_CONFIRM, actor, notifier)


def complete_appointment(
    db: Session,
    appointment_id: int,
    actor: User,
    notifier: NotificationDispatcher | None = None,
) -> Appointment:
    appointment = _begin_transition(db, appointment_id, actor, ACTION_COMPLETE)
    appointment.status = target_status(ACTION_COMPLETE)
    appointment.completed_at = _now()
    return _finish_transition(db, appointment, ACTION_COMPLETE, actor, notifier)


def cancel_appointment(
    db: Session,
    appointment_id: int,
    actor: User,
    reason: str | None = None,
    notifier: NotificationDispatcher | None = None,
) -> Appointment:
    appointment = _begin_transition(db, appointment_id, actor, ACTION_CANCEL)
    appointment.status = target_status(ACTION_CANCEL)
    appointment.cancellation_reason = (reason or '').strip() or None
    appointment.cancelled_by = actor.id
    appointment.cancelled_at = _now()
    return _finish_transition(db, appointment, ACTION_CANCEL, actor, notifier)


def reschedule_appointment(
    db: Session,
    appointment_id: int,
    actor: User,
    new_time: datetime | str,
    notifier: NotificationDispatcher | None = None,
) -> Appointment:
    """Move an appointment to a new interval; it goes back to pending.

    On conflict the stored appointment is left exactly as it was.
    """
    appointment = _begin_transition(db, appointment_id, actor, ACTION_RESCHEDULE)

    try:
        start = resolve_start_time(new_time)
    except InvalidError:
        db.rollback()
        raise
    end = start + appointment_duration()

    try:
        overlapping = find_overlapping_appointment(
            db, appointment.doctor_id, start, end, exclude_appointment_id=appointment.id,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to check overlap for appointment %s', appointment.id)
        raise InternalError('Failed to reschedule appointment') from exc

    if overlapping:
        db.rollback()
        raise ConflictError(SLOT_TAKEN_MESSAGE)

    appointment.start_time = start
    appointment.end_time = end
    appointment.status = target_status(ACTION_RESCHEDULE)
    appointment.confirmed_at = None
    return _finish_transition(db, appointment, ACTION_RESCHEDULE, actor, notifier)


def update_status(
    db: Session,
    appointment_id: int,
    actor: User,
    new_status: str,
    reason: str | None = None,
    notifier: NotificationDispatcher | None = None,
) -> Appointment:
    """Doctor portal entry point: move to ``confirmed``, ``completed`` or ``cancelled``."""
    action = STATUS_ACTIONS.get(new_status)
    if action is None:
        raise InvalidError(f"Invalid status. Must be one of: {', '.join(STATUS_ACTIONS)}")

    if action == ACTION_CONFIRM:
        return confirm_appointment(db, appointment_id, actor, notifier=notifier)
    if action == ACTION_COMPLETE:
        return complete_appointment(db, appointment_id, actor, notifier=notifier)
    return cancel_appointment(db, appointment_id, actor, reason=reason, notifier=notifier)


def save_clinical_notes(db: Session, appointment_id: int, actor: User, notes: str | None) -> Appointment:
    appointment = load_appointment(db, appointment_id, for_update=True)
    if not (actor.is_admin or is_assigned_doctor(actor, appointment)):
        db.rollback()
        raise ForbiddenError('You can only update your own appointments')

    appointment.clinical_notes = notes
    commit_appointment(db, 'update notes for')
    db.refresh(appointment)
    logger.info('User %s saved notes for appointment %s', actor.id, appointment.id)
    return appointment
