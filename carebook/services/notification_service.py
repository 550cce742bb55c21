"""
Appointment notifications.

Every lifecycle transition hands exactly one ``Notification`` to a
``NotificationDispatcher``. The dispatcher schedules delivery through a
scheduler callable (FastAPI's ``BackgroundTasks.add_task`` in the HTTP layer)
and never lets a delivery failure reach the code that triggered it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from carebook.utils.datetime_utils import isoformat_utc

logger = logging.getLogger(__name__)

KIND_BOOKING_CONFIRMATION = 'booking_confirmation'
KIND_APPOINTMENT_CONFIRMED = 'appointment_confirmed'
KIND_APPOINTMENT_RESCHEDULED = 'appointment_rescheduled'
KIND_APPOINTMENT_COMPLETED = 'appointment_completed'
KIND_CANCELLATION_NOTICE = 'cancellation_notice'


@dataclass
class Notification:
    recipient: str | None
    template_kind: str
    appointment: dict[str, Any]
    doctor: dict[str, Any] = field(default_factory=dict)
    patient: dict[str, Any] = field(default_factory=dict)


class NotificationSender(Protocol):
    def send(self, notification: Notification) -> None:
        ...


class LoggingNotificationSender:
    """Default sender. Delivery itself (e-mail, SMS) lives outside this service."""

    def send(self, notification: Notification) -> None:
        logger.info(
            'Notification %s queued for %s (appointment %s)',
            notification.template_kind,
            notification.recipient,
            notification.appointment.get('id'),
        )


def _run_now(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


class NotificationDispatcher:
    def __init__(
        self,
        sender: NotificationSender | None = None,
        scheduler: Callable[..., Any] | None = None,
    ):
        self.sender = sender or LoggingNotificationSender()
        self.scheduler = scheduler or _run_now

    def dispatch(self, notification: Notification) -> None:
        try:
            self.scheduler(self._deliver, notification)
        except Exception:
            logger.exception('Failed to schedule %s notification', notification.template_kind)

    def _deliver(self, notification: Notification) -> None:
        if not notification.recipient:
            logger.info(
                'Skipping %s notification for appointment %s: no recipient',
                notification.template_kind,
                notification.appointment.get('id'),
            )
            return
        try:
            self.sender.send(notification)
        except Exception:
            logger.exception(
                'Failed to send %s notification for appointment %s',
                notification.template_kind,
                notification.appointment.get('id'),
            )


def build_notification(template_kind: str, appointment) -> Notification:
    """Snapshot the appointment, doctor and patient while the session is still open."""
    doctor = appointment.doctor
    patient = appointment.patient
    doctor_user = doctor.user if doctor else None

    return Notification(
        recipient=patient.email if patient else None,
        template_kind=template_kind,
        appointment={
            'id': appointment.id,
            'start_time': isoformat_utc(appointment.start_time),
            'end_time': isoformat_utc(appointment.end_time),
            'status': appointment.status,
            'reason': appointment.reason,
            'cancellation_reason': appointment.cancellation_reason,
        },
        doctor={
            'id': doctor.id if doctor else None,
            'name': doctor_user.full_name if doctor_user else None,
            'specialization': doctor.specialization if doctor else None,
            'department': doctor.department.name if doctor and doctor.department else None,
        },
        patient={
            'id': patient.id if patient else None,
            'name': patient.full_name if patient else None,
            'email': patient.email if patient else None,
        },
    )


def notify(dispatcher: NotificationDispatcher | None, template_kind: str, appointment) -> None:
    dispatcher = dispatcher or NotificationDispatcher()
    try:
        notification = build_notification(template_kind, appointment)
    except Exception:
        logger.exception('Failed to build %s notification for appointment %s', template_kind, appointment.id)
        return
    dispatcher.dispatch(notification)
