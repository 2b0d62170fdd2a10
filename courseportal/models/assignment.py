"""Assignment model definitions."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String
from courseportal.database import Base


class Assignment(Base):
    """Represents an assignment with a calendar due date."""
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    due_date = Column(Date, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)
