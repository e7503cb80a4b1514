"""Tuition posting model definitions."""

from sqlalchemy import Column, DateTime, Float, Integer, String, Text

from etuition.database import Base, utcnow


class TuitionStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    FILLED = 'filled'

    ALL = (PENDING, APPROVED, REJECTED, FILLED)


class Tuition(Base):
    """A student's request for a tutor."""
    __tablename__ = "tuitions"

    id = Column(Integer, primary_key=True, index=True)
    student_email = Column(String, index=True, nullable=False)
    student_name = Column(String)
    subject = Column(String, nullable=False)
    location = Column(String, nullable=False)
    budget = Column(Float, nullable=False)
    class_level = Column(String)
    schedule = Column(String)
    description = Column(Text)
    status = Column(String, index=True, nullable=False, default=TuitionStatus.PENDING)
    created_at = Column(DateTime, default=utcnow, index=True)

    hired_tutor_email = Column(String)
    hired_tutor_name = Column(String)
    hired_at = Column(DateTime)
