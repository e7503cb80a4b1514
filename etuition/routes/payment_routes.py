from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from etuition.auth.dependencies import AuthContext, get_auth_context, normalize_email
from etuition.core.schema import APIModel, UTCDateTime
from etuition.database import get_db
from etuition.routes.application_routes import ApplicationResponse
from etuition.routes.tuition_routes import TuitionResponse
from etuition.services import lifecycle, payment_gateway, queries

router = APIRouter(tags=['payments'])


class PaymentIntentRequest(APIModel):
    price: float | None = None
    application_id: int | None = None


class PaymentIntentResponse(APIModel):
    client_secret: str


class CreatePaymentRequest(APIModel):
    application_id: int
    price: float
    transaction_id: str


class PaymentResponse(APIModel):
    id: int
    application_id: int
    tuition_id: int | None = None
    email: str
    tutor_email: str | None = None
    tutor_name: str | None = None
    price: float
    currency: str
    transaction_id: str
    created_at: UTCDateTime | None = None


class HireResponse(APIModel):
    payment: PaymentResponse
    application: ApplicationResponse | None = None
    tuition: TuitionResponse | None = None
    duplicate: bool = False


@router.post('/create-payment-intent', response_model=PaymentIntentResponse)
def create_payment_intent(
    data: PaymentIntentRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    metadata = {'payer': context.email}
    if data.application_id is not None:
        application, tuition = lifecycle.ensure_hireable(db, context, data.application_id)
        metadata.update(application_id=str(application.id), tuition_id=str(tuition.id))

    client_secret = payment_gateway.create_payment_intent(data.price, metadata=metadata)
    return PaymentIntentResponse(client_secret=client_secret)


@router.post('/payments', response_model=HireResponse)
def create_payment(
    data: CreatePaymentRequest,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    result = lifecycle.finalize_payment(
        db,
        context,
        application_id=data.application_id,
        price=data.price,
        transaction_id=data.transaction_id,
    )
    return HireResponse(
        payment=PaymentResponse.model_validate(result.payment),
        application=ApplicationResponse.model_validate(result.application) if result.application else None,
        tuition=TuitionResponse.model_validate(result.tuition) if result.tuition else None,
        duplicate=result.duplicate,
    )


@router.get('/payments/my-history/{email}', response_model=list[PaymentResponse])
def list_my_payments(
    email: str,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    context.ensure_self(email)
    return queries.payer_history(db, normalize_email(email))


@router.get('/payments/tutor-history/{email}', response_model=list[PaymentResponse])
def list_tutor_payments(
    email: str,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    context.ensure_self(email)
    return queries.tutor_payment_history(db, normalize_email(email))
