"""Payment model definitions."""

from sqlalchemy import Column, DateTime, Float, Integer, String

from etuition.database import Base, utcnow


class Payment(Base):
    """A captured payment that hired a tutor. Never updated after insert."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, index=True, nullable=False)
    tuition_id = Column(Integer, index=True)
    email = Column(String, index=True, nullable=False)  # payer
    tutor_email = Column(String, index=True)
    tutor_name = Column(String)
    price = Column(Float, nullable=False)
    currency = Column(String, nullable=False)
    transaction_id = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
