"""Application model definitions."""

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, UniqueConstraint

from etuition.database import Base, utcnow


class ApplicationStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    ALL = (PENDING, APPROVED, REJECTED)


class Application(Base):
    """A tutor's bid on a tuition posting."""
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint('tuition_id', 'tutor_email', name='uq_applications_tuition_tutor'),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Lookup key only; deleting the tuition does not cascade here.
    tuition_id = Column(Integer, index=True, nullable=False)
    tutor_email = Column(String, index=True, nullable=False)
    tutor_name = Column(String)
    qualifications = Column(Text)
    experience = Column(String)
    expected_salary = Column(Float)
    status = Column(String, nullable=False, default=ApplicationStatus.PENDING)
    applied_at = Column(DateTime, default=utcnow, index=True)
