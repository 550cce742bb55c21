"""Department model definitions."""

from sqlalchemy import Column, Integer, String
from carebook.database import Base


class Department(Base):
    """A hospital department doctors belong to."""
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String)
