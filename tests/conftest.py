import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ['CLINIC_TIMEZONE'] = 'UTC'

from carebook.database import Base  # noqa: E402
from carebook.models.appointment import Appointment  # noqa: E402
from carebook.models.department import Department  # noqa: E402
from carebook.models.doctor import Doctor  # noqa: E402
from carebook.models.user import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, User  # noqa: E402
from carebook.services.notification_service import NotificationDispatcher  # noqa: E402

MONDAY_HOURS = {'monday': ['09:00', '11:00']}


class RecordingSender:
    def __init__(self):
        self.sent = []

    def send(self, notification) -> None:
        self.sent.append(notification)


class FailingSender:
    def send(self, notification) -> None:
        raise RuntimeError('smtp unreachable')


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _add(db, instance):
    db.add(instance)
    db.commit()
    db.refresh(instance)
    return instance


@pytest.fixture
def department(db_session) -> Department:
    return _add(db_session, Department(name='Cardiology', description='Heart care'))


@pytest.fixture
def patient(db_session) -> User:
    return _add(db_session, User(email='pat@example.com', full_name='Pat Patient', role=ROLE_PATIENT))


@pytest.fixture
def other_patient(db_session) -> User:
    return _add(db_session, User(email='sam@example.com', full_name='Sam Other', role=ROLE_PATIENT))


@pytest.fixture
def admin(db_session) -> User:
    return _add(db_session, User(email='admin@example.com', full_name='Ada Admin', role=ROLE_ADMIN))


@pytest.fixture
def doctor_user(db_session) -> User:
    return _add(db_session, User(email='dr.lee@example.com', full_name='Dr. Lee', role=ROLE_DOCTOR))


@pytest.fixture
def doctor(db_session, doctor_user, department) -> Doctor:
    return _add(
        db_session,
        Doctor(
            user_id=doctor_user.id,
            department_id=department.id,
            specialization='Cardiologist',
            is_active=True,
            availability=MONDAY_HOURS,
        ),
    )


@pytest.fixture
def other_doctor_user(db_session) -> User:
    return _add(db_session, User(email='dr.kim@example.com', full_name='Dr. Kim', role=ROLE_DOCTOR))


@pytest.fixture
def other_doctor(db_session, other_doctor_user, department) -> Doctor:
    return _add(
        db_session,
        Doctor(user_id=other_doctor_user.id, department_id=department.id, is_active=True, availability=MONDAY_HOURS),
    )


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def notifier(sender) -> NotificationDispatcher:
    return NotificationDispatcher(sender=sender)


@pytest.fixture
def failing_notifier() -> NotificationDispatcher:
    return NotificationDispatcher(sender=FailingSender())


@pytest.fixture
def make_appointment(db_session):
    def _make(patient, doctor, start_time: datetime, end_time: datetime, status: str = 'pending') -> Appointment:
        return _add(
            db_session,
            Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                department_id=doctor.department_id,
                start_time=start_time,
                end_time=end_time,
                status=status,
                reason='Checkup',
            ),
        )

    return _make
