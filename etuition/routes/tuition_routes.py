from fastapi import APIRouter, Depends, Query
from pydantic import Field, field_validator
from sqlalchemy.orm import Session

from etuition.auth.dependencies import (
    AuthContext,
    get_auth_context,
    normalize_email,
    require_admin,
)
from etuition.core import config
from etuition.core.schema import APIModel, DeleteResponse, InsertResponse, UTCDateTime
from etuition.database import get_db
from etuition.services import lifecycle, queries

router = APIRouter(tags=['tuitions'])

MAX_DESCRIPTION_LENGTH = 2000


def _strip_required(value: str, label: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f'{label} is required.')
    return normalized


class UpdateTuitionRequest(APIModel):
    student_name: str | None = None
    subject: str | None = None
    location: str | None = None
    budget: float | None = Field(default=None, gt=0)
    class_level: str | None = None
    schedule: str | None = None
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, value: str | None) -> str | None:
        return None if value is None else _strip_required(value, 'Subject')

    @field_validator('location')
    @classmethod
    def validate_location(cls, value: str | None) -> str | None:
        return None if value is None else _strip_required(value, 'Location')


class CreateTuitionRequest(UpdateTuitionRequest):
    subject: str
    location: str
    budget: float = Field(gt=0)


class ReviewTuitionRequest(APIModel):
    status: str

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        return value.strip().lower()


class TuitionResponse(APIModel):
    id: int
    student_email: str
    student_name: str | None = None
    subject: str
    location: str
    budget: float
    class_level: str | None = None
    schedule: str | None = None
    description: str | None = None
    status: str
    created_at: UTCDateTime | None = None
    hired_tutor_email: str | None = None
    hired_tutor_name: str | None = None
    hired_at: UTCDateTime | None = None


class TuitionPage(APIModel):
    result: list[TuitionResponse]
    total: int


@router.get('/tuitions', response_model=TuitionPage)
def list_tuitions(
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    items, total = queries.list_public_tuitions(db, search=search, page=page, limit=limit)
    return TuitionPage(result=items, total=total)


@router.get('/tuitions/admin/all', response_model=TuitionPage)
def list_all_tuitions(
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(require_admin),
):
    items, total = queries.list_all_tuitions(db, status=status, search=search, page=page, limit=limit)
    return TuitionPage(result=items, total=total)


@router.get('/my-tuitions/{email}', response_model=list[TuitionResponse])
@router.get('/tuitions/student/{email}', response_model=list[TuitionResponse], include_in_schema=False)
def list_my_tuitions(
    email: str,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    context.ensure_self(email)
    return queries.list_student_tuitions(db, normalize_email(email))


@router.get('/tuitions/{tuition_id}', response_model=TuitionResponse)
def get_tuition(tuition_id: int, db: Session = Depends(get_db)):
    return lifecycle.get_tuition_or_404(db, tuition_id)


@router.post('/tuitions', response_model=InsertResponse)
def create_tuition(
    data: CreateTuitionRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    tuition = lifecycle.create_tuition(db, context, data.model_dump(exclude_none=True))
    return InsertResponse(inserted_id=tuition.id)


@router.patch('/tuitions/update/{tuition_id}', response_model=TuitionResponse)
def update_tuition(
    tuition_id: int,
    data: UpdateTuitionRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    return lifecycle.update_tuition(db, context, tuition_id, data.model_dump(exclude_unset=True))


@router.delete('/tuitions/{tuition_id}', response_model=DeleteResponse)
def delete_tuition(
    tuition_id: int,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    lifecycle.delete_tuition(db, context, tuition_id)
    return DeleteResponse(deleted_count=1)


@router.patch('/tuitions/status/{tuition_id}', response_model=TuitionResponse)
def review_tuition(
    tuition_id: int,
    data: ReviewTuitionRequest,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(require_admin),
):
    return lifecycle.review_tuition(db, tuition_id, data.status)
