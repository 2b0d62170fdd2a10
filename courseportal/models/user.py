"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String
from courseportal.database import Base, utcnow


class User(Base):
    """Represents a registered portal user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String)
    age = Column(Integer)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="student")  # student/teacher/admin
    created_at = Column(DateTime, default=utcnow)
