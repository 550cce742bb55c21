import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from carebook.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL")


def build_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=config.SQL_ECHO, connect_args=connect_args)


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

APPOINTMENT_OVERLAP_CONSTRAINT = 'appointments_doctor_no_overlap'
APPOINTMENT_START_INDEX = 'uq_appointments_doctor_start_active'

_schema_lock = Lock()
_appointment_schema_checked = False


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('clinical_notes', 'ALTER TABLE appointments ADD COLUMN clinical_notes VARCHAR'),
            ('cancellation_reason', 'ALTER TABLE appointments ADD COLUMN cancellation_reason VARCHAR'),
            ('cancelled_by', 'ALTER TABLE appointments ADD COLUMN cancelled_by INTEGER'),
            ('cancelled_at', 'ALTER TABLE appointments ADD COLUMN cancelled_at TIMESTAMP'),
            ('confirmed_at', 'ALTER TABLE appointments ADD COLUMN confirmed_at TIMESTAMP'),
            ('completed_at', 'ALTER TABLE appointments ADD COLUMN completed_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_doctor_time_range '
                     'ON appointments(doctor_id, start_time, end_time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_start ON appointments(patient_id, start_time)')
            )

            if engine.dialect.name == 'postgresql':
                ensure_overlap_constraint(connection)
            elif engine.dialect.name == 'sqlite':
                ensure_overlap_triggers(connection)

        _appointment_schema_checked = True


def ensure_overlap_constraint(connection) -> None:
    """Install the exclusion constraint that makes double booking impossible in Postgres."""
    exists = connection.execute(
        text('SELECT 1 FROM pg_constraint WHERE conname = :name'),
        {'name': APPOINTMENT_OVERLAP_CONSTRAINT},
    ).first()
    if exists:
        return

    connection.execute(text('CREATE EXTENSION IF NOT EXISTS btree_gist'))
    connection.execute(
        text(
            f'ALTER TABLE appointments ADD CONSTRAINT {APPOINTMENT_OVERLAP_CONSTRAINT} '
            "EXCLUDE USING gist (doctor_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
            "WHERE (status <> 'cancelled')"
        )
    )


_OVERLAP_CHECK = (
    "SELECT RAISE(ABORT, '" + APPOINTMENT_OVERLAP_CONSTRAINT + "') "
    'WHERE EXISTS ('
    'SELECT 1 FROM appointments AS existing '
    'WHERE existing.doctor_id = NEW.doctor_id '
    "AND existing.status != 'cancelled' "
    'AND existing.id IS NOT NEW.id '
    'AND existing.start_time < NEW.end_time '
    'AND existing.end_time > NEW.start_time'
    ');'
)

SQLITE_OVERLAP_TRIGGERS = [
    (
        'CREATE TRIGGER IF NOT EXISTS appointments_no_overlap_insert '
        'BEFORE INSERT ON appointments '
        "FOR EACH ROW WHEN NEW.status != 'cancelled' "
        f'BEGIN {_OVERLAP_CHECK} END'
    ),
    (
        'CREATE TRIGGER IF NOT EXISTS appointments_no_overlap_update '
        'BEFORE UPDATE OF doctor_id, start_time, end_time, status ON appointments '
        "FOR EACH ROW WHEN NEW.status != 'cancelled' "
        f'BEGIN {_OVERLAP_CHECK} END'
    ),
]


def ensure_overlap_triggers(connection) -> None:
    """SQLite has no exclusion constraints; triggers reject overlapping live rows instead."""
    for statement in SQLITE_OVERLAP_TRIGGERS:
        connection.execute(text(statement))
