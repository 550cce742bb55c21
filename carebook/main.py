import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from carebook.core import config
from carebook.core.logging_config import configure_logging
from carebook.database import Base, engine, ensure_appointment_schema
from carebook.models import appointment, department, doctor, user  # noqa: F401
from carebook.routes import appointment_routes, department_routes, doctor_portal_routes, doctor_routes

configure_logging()
config.validate_runtime_config()

app = FastAPI(title='CareBook Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and Postgres credentials.')


@app.get('/')
def root():
    return {'status': 'CareBook Scheduling API Running'}


app.include_router(department_routes.router, prefix='/departments')
app.include_router(doctor_routes.router, prefix='/doctors')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(doctor_portal_routes.router, prefix='/doctor')
