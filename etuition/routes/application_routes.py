from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from etuition.auth.dependencies import (
    AuthContext,
    get_auth_context,
    normalize_email,
    require_tutor,
)
from etuition.core.schema import APIModel, DeleteResponse, InsertResponse, UTCDateTime
from etuition.database import get_db
from etuition.routes.tuition_routes import TuitionResponse
from etuition.services import lifecycle, queries

router = APIRouter(tags=['applications'])


class CreateApplicationRequest(APIModel):
    tuition_id: int
    tutor_name: str | None = None
    qualifications: str | None = None
    experience: str | None = None
    expected_salary: float | None = Field(default=None, gt=0)


class ApplicationResponse(APIModel):
    id: int
    tuition_id: int
    tutor_email: str
    tutor_name: str | None = None
    qualifications: str | None = None
    experience: str | None = None
    expected_salary: float | None = None
    status: str
    applied_at: UTCDateTime | None = None


class ApplicationWithTuitionResponse(ApplicationResponse):
    tuition_data: TuitionResponse | None = None


def _joined(rows) -> list[ApplicationWithTuitionResponse]:
    return [
        ApplicationWithTuitionResponse(
            **ApplicationResponse.model_validate(application).model_dump(),
            tuition_data=TuitionResponse.model_validate(tuition) if tuition is not None else None,
        )
        for application, tuition in rows
    ]


@router.post('/applications', response_model=InsertResponse)
def create_application(
    data: CreateApplicationRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_tutor),
):
    fields = data.model_dump(exclude={'tuition_id'})
    result = lifecycle.apply_to_tuition(db, context, data.tuition_id, fields)
    if isinstance(result, lifecycle.DuplicateAction):
        return InsertResponse(message=result.message, inserted_id=None)
    return InsertResponse(inserted_id=result.id)


@router.get('/applications/received/{email}', response_model=list[ApplicationWithTuitionResponse])
def list_received_applications(
    email: str,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    context.ensure_self(email)
    return _joined(queries.received_applications(db, normalize_email(email)))


@router.get('/applications/tutor/{email}', response_model=list[ApplicationWithTuitionResponse])
def list_my_applications(
    email: str,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    context.ensure_self(email)
    return _joined(queries.tutor_applications(db, normalize_email(email)))


@router.get('/applications/{application_id}', response_model=ApplicationResponse)
def get_application(
    application_id: int,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    return lifecycle.get_application_for(db, context, application_id)


@router.patch('/applications/reject/{application_id}', response_model=ApplicationResponse)
def reject_application(
    application_id: int,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    return lifecycle.reject_application(db, context, application_id)


@router.delete('/applications/{application_id}', response_model=DeleteResponse)
def delete_application(
    application_id: int,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    lifecycle.delete_application(db, context, application_id)
    return DeleteResponse(deleted_count=1)
