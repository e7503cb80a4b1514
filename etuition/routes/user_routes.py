import logging

from fastapi import APIRouter, Depends
from pydantic import Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from etuition.auth.dependencies import AuthContext, get_auth_context, normalize_email, require_admin
from etuition.core import config
from etuition.core.errors import NotFound
from etuition.core.schema import APIModel, DeleteResponse, InsertResponse, UTCDateTime
from etuition.database import get_db, utcnow
from etuition.models.user import User, UserRole
from etuition.services import queries

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

REGISTRATION_ROLES = (UserRole.STUDENT, UserRole.TUTOR)


class ProfileFields(APIModel):
    name: str | None = None
    photo_url: str | None = Field(default=None, alias='photoURL')
    phone: str | None = None
    qualifications: str | None = None
    experience: str | None = None
    subjects: str | None = None
    location: str | None = None
    bio: str | None = None


class CreateUserRequest(ProfileFields):
    email: str
    role: str = UserRole.STUDENT

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = normalize_email(value)
        if not normalized:
            raise ValueError('Email is required.')
        return normalized

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = (value or UserRole.STUDENT).strip().lower()
        if normalized not in REGISTRATION_ROLES:
            raise ValueError('New users can only register as student or tutor.')
        return normalized


class UpdateRoleRequest(APIModel):
    role: str

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in UserRole.ALL:
            raise ValueError('Invalid role.')
        return normalized


class UserResponse(ProfileFields):
    id: int
    email: str
    role: str
    created_at: UTCDateTime | None = None


class RoleResponse(APIModel):
    role: str


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound('User not found')
    return user


@router.post('/users', response_model=InsertResponse)
def create_user(data: CreateUserRequest, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == data.email).first()
    if existing_user:
        return InsertResponse(message='user already exists', inserted_id=None)

    user = User(**data.model_dump(), created_at=utcnow())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return InsertResponse(message='user already exists', inserted_id=None)
    db.refresh(user)

    logger.info('Registered %s as %s', user.email, user.role)
    return InsertResponse(inserted_id=user.id)


@router.get('/users/{email}', response_model=UserResponse | RoleResponse)
def get_user_by_email(
    email: str,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_auth_context),
):
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None:
        # Fresh social logins reach the dashboard before POST /users lands.
        return RoleResponse(role=UserRole.STUDENT)
    return UserResponse.model_validate(user)


@router.patch('/users/update/{email}', response_model=UserResponse)
def update_profile(
    email: str,
    data: ProfileFields,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    context.ensure_self(email)

    user = db.query(User).filter(User.email == context.email).first()
    if user is None:
        raise NotFound('User not found')

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


@router.get('/users', response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db), _: AuthContext = Depends(require_admin)):
    return db.query(User).order_by(User.id.asc()).all()


@router.patch('/users/role/{user_id}', response_model=UserResponse)
def update_role(
    user_id: int,
    data: UpdateRoleRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_admin),
):
    user = get_user_or_404(db, user_id)
    user.role = data.role
    db.commit()
    db.refresh(user)

    logger.info('%s changed role of %s to %s', context.email, user.email, user.role)
    return user


@router.delete('/users/{user_id}', response_model=DeleteResponse)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_admin),
):
    user = get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()

    logger.info('%s deleted user %s', context.email, user_id)
    return DeleteResponse(deleted_count=1)


@router.get('/featured-tutors', response_model=list[UserResponse])
def featured_tutors(db: Session = Depends(get_db)):
    return queries.list_tutors(db, limit=config.FEATURED_TUTOR_LIMIT)


@router.get('/all-tutors', response_model=list[UserResponse])
def all_tutors(db: Session = Depends(get_db)):
    return queries.list_tutors(db)


@router.get('/tutors/{user_id}', response_model=UserResponse)
def get_tutor(user_id: int, db: Session = Depends(get_db)):
    user = get_user_or_404(db, user_id)
    if (user.role or '').lower() != UserRole.TUTOR:
        raise NotFound('Tutor not found')
    return user
