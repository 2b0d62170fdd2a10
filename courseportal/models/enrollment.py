"""Enrollment model definitions."""

from sqlalchemy import Column, ForeignKey, Integer
from courseportal.database import Base


class Enrollment(Base):
    """Links a student to a course."""
    __tablename__ = "enrollments"

    student_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    course_id = Column(Integer, ForeignKey("courses.id"), primary_key=True)
