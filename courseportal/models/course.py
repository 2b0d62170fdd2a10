"""Course model definitions."""

from sqlalchemy import Column, Integer, String
from courseportal.database import Base


class Course(Base):
    """Represents a course that assignments and enrollments hang off."""
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
