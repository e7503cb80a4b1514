"""Authentication and authorization gates used as FastAPI dependencies.

``get_claims`` verifies the bearer token. ``get_auth_context`` resolves the
caller's stored role with a single read and hands the result to the route as
an ``AuthContext``; role and ownership checks work on that object only.
"""

import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from etuition.auth import jwt_handler
from etuition.core.errors import Forbidden, Unauthenticated
from etuition.database import get_db
from etuition.models.user import User, UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    email: str
    role: str = UserRole.STUDENT

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def ensure_self(self, email: str) -> None:
        if self.email != normalize_email(email):
            raise Forbidden('forbidden')

    def ensure_self_or_admin(self, email: str | None) -> None:
        if not self.is_admin and self.email != normalize_email(email or ''):
            raise Forbidden('forbidden')


def get_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()
    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        logger.info('Rejected bearer token: %s', exc)
        raise Unauthenticated() from exc

    email = payload.get('email')
    if not isinstance(email, str) or not email.strip():
        raise Unauthenticated()
    return payload


def load_auth_context(db: Session, email: str) -> AuthContext:
    user = db.query(User).filter(User.email == email).first()
    role = ((user.role if user is not None else None) or UserRole.STUDENT).lower()
    return AuthContext(email=email, role=role)


def get_auth_context(
    claims: dict = Depends(get_claims),
    db: Session = Depends(get_db),
) -> AuthContext:
    return load_auth_context(db, normalize_email(claims['email']))


def require_role(role: str):
    def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if context.role != role:
            raise Forbidden()
        return context

    dependency.__name__ = f'require_{role}'
    return dependency


require_admin = require_role(UserRole.ADMIN)
require_tutor = require_role(UserRole.TUTOR)


def normalize_email(value: str) -> str:
    return (value or '').strip().lower()
