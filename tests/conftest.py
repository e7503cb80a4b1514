import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from etuition.auth import jwt_handler  # noqa: E402
from etuition.database import Base, get_db, init_database, utcnow  # noqa: E402
from etuition.main import app  # noqa: E402
from etuition.models.application import Application, ApplicationStatus  # noqa: E402
from etuition.models.tuition import Tuition, TuitionStatus  # noqa: E402
from etuition.models.user import User, UserRole  # noqa: E402


@pytest.fixture
def db_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    init_database(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def file_session_factory(tmp_path):
    # Separate connections per session, so two sessions can interleave.
    engine = create_engine(
        f'sqlite:///{tmp_path / "etuition.db"}',
        connect_args={'check_same_thread': False},
    )
    init_database(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def build(email: str) -> dict:
        token = jwt_handler.create_access_token({'email': email})
        return {'Authorization': f'Bearer {token}'}

    return build


@pytest.fixture
def make_user(db):
    def build(email: str, role: str = UserRole.STUDENT, **fields) -> User:
        user = User(email=email, role=role, name=fields.pop('name', email.split('@')[0]), **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return build


@pytest.fixture
def make_tuition(db):
    def build(
        student_email: str = 'student@example.com',
        status: str = TuitionStatus.APPROVED,
        subject: str = 'Mathematics',
        location: str = 'Dhaka',
        budget: float = 5000,
        **fields,
    ) -> Tuition:
        tuition = Tuition(
            student_email=student_email,
            status=status,
            subject=subject,
            location=location,
            budget=budget,
            created_at=fields.pop('created_at', utcnow()),
            **fields,
        )
        db.add(tuition)
        db.commit()
        db.refresh(tuition)
        return tuition

    return build


@pytest.fixture
def make_application(db):
    def build(
        tuition_id: int,
        tutor_email: str = 'tutor@example.com',
        status: str = ApplicationStatus.PENDING,
        **fields,
    ) -> Application:
        application = Application(
            tuition_id=tuition_id,
            tutor_email=tutor_email,
            tutor_name=fields.pop('tutor_name', 'Tutor B'),
            status=status,
            applied_at=fields.pop('applied_at', utcnow()),
            **fields,
        )
        db.add(application)
        db.commit()
        db.refresh(application)
        return application

    return build
