import logging
from datetime import datetime, timedelta, timezone

from carebook.services.notification_service import (
    KIND_BOOKING_CONFIRMATION,
    Notification,
    NotificationDispatcher,
    build_notification,
    notify,
)

NINE_THIRTY = datetime(2030, 1, 7, 9, 30, tzinfo=timezone.utc)


class QueueingScheduler:
    def __init__(self):
        self.tasks = []

    def __call__(self, func, *args) -> None:
        self.tasks.append((func, args))

    def run(self) -> None:
        for func, args in self.tasks:
            func(*args)


def _notification(recipient='pat@example.com') -> Notification:
    return Notification(recipient=recipient, template_kind=KIND_BOOKING_CONFIRMATION, appointment={'id': 1})


def test_build_notification_snapshots_appointment(make_appointment, patient, doctor) -> None:
    appointment = make_appointment(patient, doctor, NINE_THIRTY, NINE_THIRTY + timedelta(minutes=30))

    notification = build_notification(KIND_BOOKING_CONFIRMATION, appointment)

    assert notification.recipient == 'pat@example.com'
    assert notification.appointment['start_time'] == '2030-01-07T09:30:00Z'
    assert notification.appointment['end_time'] == '2030-01-07T10:00:00Z'
    assert notification.doctor == {
        'id': doctor.id,
        'name': 'Dr. Lee',
        'specialization': 'Cardiologist',
        'department': 'Cardiology',
    }
    assert notification.patient['name'] == 'Pat Patient'


def test_dispatch_defers_delivery_to_scheduler(sender) -> None:
    scheduler = QueueingScheduler()
    dispatcher = NotificationDispatcher(sender=sender, scheduler=scheduler)

    dispatcher.dispatch(_notification())

    assert sender.sent == []
    scheduler.run()
    assert len(sender.sent) == 1


def test_delivery_without_recipient_is_skipped(notifier, sender) -> None:
    notifier.dispatch(_notification(recipient=None))

    assert sender.sent == []


def test_sender_failure_is_logged_not_raised(failing_notifier, caplog) -> None:
    with caplog.at_level(logging.ERROR):
        failing_notifier.dispatch(_notification())

    assert 'Failed to send booking_confirmation notification for appointment 1' in caplog.text


def test_scheduler_failure_is_logged_not_raised(sender, caplog) -> None:
    def broken_scheduler(func, *args):
        raise RuntimeError('queue full')

    dispatcher = NotificationDispatcher(sender=sender, scheduler=broken_scheduler)

    with caplog.at_level(logging.ERROR):
        dispatcher.dispatch(_notification())

    assert sender.sent == []
    assert 'Failed to schedule booking_confirmation notification' in caplog.text


def test_notify_uses_logging_sender_by_default(make_appointment, patient, doctor, caplog) -> None:
    appointment = make_appointment(patient, doctor, NINE_THIRTY, NINE_THIRTY + timedelta(minutes=30))

    with caplog.at_level(logging.INFO, logger='carebook.services.notification_service'):
        notify(None, KIND_BOOKING_CONFIRMATION, appointment)

    assert 'Notification booking_confirmation queued for pat@example.com' in caplog.text
