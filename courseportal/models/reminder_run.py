"""Ledger of reminder runs, one row per calendar day."""

from sqlalchemy import Column, Date, DateTime, Integer
from courseportal.database import Base


class ReminderRun(Base):
    __tablename__ = "reminder_runs"

    id = Column(Integer, primary_key=True)
    run_date = Column(Date, unique=True, nullable=False)
    started_at = Column(DateTime, nullable=False)
    finished_at = Column(DateTime)
    sent_count = Column(Integer, default=0)
    failed_count = Column(Integer, default=0)
