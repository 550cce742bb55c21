"""User model definitions."""

from sqlalchemy import Column, Integer, String
from carebook.database import Base

ROLE_PATIENT = 'patient'
ROLE_DOCTOR = 'doctor'
ROLE_ADMIN = 'admin'


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String)
    phone = Column(String)
    hashed_password = Column(String)
    role = Column(String, default=ROLE_PATIENT)  # patient/doctor/admin

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
