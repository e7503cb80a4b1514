"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, Text

from etuition.database import Base, utcnow


class UserRole:
    STUDENT = 'student'
    TUTOR = 'tutor'
    ADMIN = 'admin'

    ALL = (STUDENT, TUTOR, ADMIN)


class User(Base):
    """Represents a marketplace user, keyed by email."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    photo_url = Column(String)
    role = Column(String, nullable=False, default=UserRole.STUDENT)  # student/tutor/admin
    created_at = Column(DateTime, default=utcnow)

    # Tutor profile
    phone = Column(String)
    qualifications = Column(Text)
    experience = Column(String)
    subjects = Column(String)
    location = Column(String)
    bio = Column(Text)
