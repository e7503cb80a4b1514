from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, field_validator

from etuition.auth import jwt_handler
from etuition.auth.dependencies import normalize_email

router = APIRouter(tags=['auth'])


class TokenRequest(BaseModel):
    """Identity payload to sign; extra keys are carried into the token."""
    model_config = ConfigDict(extra='allow')

    email: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = normalize_email(value)
        if not normalized:
            raise ValueError('Email is required.')
        return normalized


class TokenResponse(BaseModel):
    token: str


@router.post('/jwt', response_model=TokenResponse)
def issue_token(data: TokenRequest):
    token = jwt_handler.create_access_token(identity=data.model_dump())
    return TokenResponse(token=token)
