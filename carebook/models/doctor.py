"""Doctor model definitions."""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from carebook.database import Base
from carebook.models.department import Department
from carebook.models.user import User


class Doctor(Base):
    """A doctor and the weekly availability they publish.

    ``availability`` holds whatever shape the doctor portal wrote; readers
    normalize it with ``carebook.scheduling.availability.normalize_availability``.
    """
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"))
    specialization = Column(String)
    is_active = Column(Boolean, default=True, nullable=False)
    availability = Column(JSON)

    user = relationship(User)
    department = relationship(Department)
