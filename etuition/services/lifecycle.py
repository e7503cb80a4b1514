"""State transitions for tuition postings, applications and payments.

Tuition:      pending -> approved | rejected (admin), approved -> filled (hire)
Application:  pending -> rejected (posting owner), pending -> approved (hire)
Payment:      inserted once per transaction id, together with the hire

Functions here raise ``etuition.core.errors`` exceptions and commit their own
writes. The hire commits its three writes in a single transaction.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from etuition.auth.dependencies import AuthContext
from etuition.core import config
from etuition.core.errors import Conflict, Forbidden, InvalidArgument, NotFound
from etuition.database import utcnow
from etuition.models.application import Application, ApplicationStatus
from etuition.models.payment import Payment
from etuition.models.tuition import Tuition, TuitionStatus

logger = logging.getLogger(__name__)

TUITION_EDITABLE_FIELDS = (
    'student_name',
    'subject',
    'location',
    'budget',
    'class_level',
    'schedule',
    'description',
)
TUITION_REQUIRED_FIELDS = ('subject', 'location', 'budget')
REVIEW_STATUSES = (TuitionStatus.APPROVED, TuitionStatus.REJECTED)


@dataclass(frozen=True)
class DuplicateAction:
    """A create request that matched an existing record and wrote nothing."""
    message: str


@dataclass(frozen=True)
class HireResult:
    payment: Payment
    application: Application | None
    tuition: Tuition | None
    duplicate: bool = False


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def get_tuition_or_404(db: Session, tuition_id: int) -> Tuition:
    tuition = db.query(Tuition).filter(Tuition.id == tuition_id).first()
    if tuition is None:
        raise NotFound('Tuition not found')
    return tuition


def get_application_or_404(db: Session, application_id: int) -> Application:
    application = db.query(Application).filter(Application.id == application_id).first()
    if application is None:
        raise NotFound('Application not found')
    return application


def _ensure_tuition_owner(context: AuthContext, tuition: Tuition) -> None:
    if not context.is_admin and tuition.student_email != context.email:
        raise Forbidden('forbidden')


# Tuition postings

def create_tuition(db: Session, context: AuthContext, fields: dict) -> Tuition:
    values = {key: fields[key] for key in TUITION_EDITABLE_FIELDS if key in fields}
    tuition = Tuition(
        **values,
        student_email=context.email,
        status=TuitionStatus.PENDING,
        created_at=utcnow(),
    )
    db.add(tuition)
    _commit(db)
    db.refresh(tuition)
    logger.info('Tuition %s posted by %s', tuition.id, context.email)
    return tuition


def update_tuition(db: Session, context: AuthContext, tuition_id: int, fields: dict) -> Tuition:
    tuition = get_tuition_or_404(db, tuition_id)
    _ensure_tuition_owner(context, tuition)
    if tuition.status == TuitionStatus.FILLED:
        raise Conflict('A filled tuition can no longer be edited.')

    for key in TUITION_EDITABLE_FIELDS:
        if key not in fields:
            continue
        if fields[key] is None and key in TUITION_REQUIRED_FIELDS:
            raise InvalidArgument(f'{key} cannot be empty.')
        setattr(tuition, key, fields[key])
    _commit(db)
    db.refresh(tuition)
    return tuition


def delete_tuition(db: Session, context: AuthContext, tuition_id: int) -> None:
    tuition = get_tuition_or_404(db, tuition_id)
    _ensure_tuition_owner(context, tuition)
    # Applications and payments keep their tuition_id; nothing cascades.
    db.delete(tuition)
    _commit(db)
    logger.info('Tuition %s deleted by %s', tuition_id, context.email)


def review_tuition(db: Session, tuition_id: int, new_status: str) -> Tuition:
    if new_status not in REVIEW_STATUSES:
        raise InvalidArgument(f'Status must be one of: {", ".join(REVIEW_STATUSES)}.')

    tuition = get_tuition_or_404(db, tuition_id)
    if tuition.status == new_status:
        return tuition
    if tuition.status != TuitionStatus.PENDING:
        raise InvalidArgument(f'Cannot change a {tuition.status} tuition to {new_status}.')

    tuition.status = new_status
    _commit(db)
    db.refresh(tuition)
    logger.info('Tuition %s reviewed: %s', tuition_id, new_status)
    return tuition


# Applications

def apply_to_tuition(
    db: Session,
    context: AuthContext,
    tuition_id: int,
    fields: dict,
) -> Application | DuplicateAction:
    tuition = get_tuition_or_404(db, tuition_id)

    exists = db.query(Application).filter(
        Application.tuition_id == tuition_id,
        Application.tutor_email == context.email,
    ).first()
    if exists:
        return DuplicateAction('Already applied')

    if tuition.status != TuitionStatus.APPROVED:
        raise Conflict('This tuition is not accepting applications.')

    application = Application(
        tuition_id=tuition_id,
        tutor_email=context.email,
        tutor_name=fields.get('tutor_name'),
        qualifications=fields.get('qualifications'),
        experience=fields.get('experience'),
        expected_salary=fields.get('expected_salary'),
        status=ApplicationStatus.PENDING,
        applied_at=utcnow(),
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError:
        # Lost the race against a concurrent identical application.
        db.rollback()
        return DuplicateAction('Already applied')
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(application)
    logger.info('Tutor %s applied to tuition %s', context.email, tuition_id)
    return application


def get_application_for(db: Session, context: AuthContext, application_id: int) -> Application:
    application = get_application_or_404(db, application_id)
    if context.is_admin or application.tutor_email == context.email:
        return application

    tuition = db.query(Tuition).filter(Tuition.id == application.tuition_id).first()
    if tuition is None or tuition.student_email != context.email:
        raise Forbidden('forbidden')
    return application


def reject_application(db: Session, context: AuthContext, application_id: int) -> Application:
    application = get_application_or_404(db, application_id)
    tuition = db.query(Tuition).filter(Tuition.id == application.tuition_id).first()
    if not context.is_admin and (tuition is None or tuition.student_email != context.email):
        raise Forbidden('forbidden')

    if application.status == ApplicationStatus.REJECTED:
        return application
    if application.status != ApplicationStatus.PENDING:
        raise Conflict(f'Cannot reject an {application.status} application.')

    application.status = ApplicationStatus.REJECTED
    _commit(db)
    db.refresh(application)
    logger.info('Application %s rejected by %s', application_id, context.email)
    return application


def delete_application(db: Session, context: AuthContext, application_id: int) -> None:
    application = get_application_or_404(db, application_id)
    context.ensure_self_or_admin(application.tutor_email)
    db.delete(application)
    _commit(db)


# Payments

def _check_hireable(application: Application, tuition: Tuition) -> None:
    if application.status != ApplicationStatus.PENDING:
        raise Conflict(f'Application is already {application.status}.')
    if tuition.status != TuitionStatus.APPROVED:
        raise Conflict(f'Tuition is {tuition.status} and cannot be filled.')


def ensure_hireable(db: Session, context: AuthContext, application_id: int) -> tuple[Application, Tuition]:
    """Check that ``context`` may pay for ``application_id`` right now."""
    application = get_application_or_404(db, application_id)
    tuition = get_tuition_or_404(db, application.tuition_id)
    if tuition.student_email != context.email:
        raise Forbidden('forbidden')
    _check_hireable(application, tuition)
    return application, tuition


def _existing_hire(db: Session, payment: Payment) -> HireResult:
    application = db.query(Application).filter(Application.id == payment.application_id).first()
    tuition = db.query(Tuition).filter(Tuition.id == payment.tuition_id).first()
    return HireResult(payment=payment, application=application, tuition=tuition, duplicate=True)


def _replay_hire(db: Session, context: AuthContext, payment: Payment, application_id: int) -> HireResult:
    if payment.email != context.email:
        raise Forbidden('forbidden')
    if payment.application_id != application_id:
        raise Conflict('Transaction id already used for another application.')
    return _existing_hire(db, payment)


def _claim_hire(db: Session, application: Application, tuition: Tuition, now) -> None:
    # Guarded writes: a concurrent hire that already moved either row leaves
    # nothing to update here.
    approved = db.query(Application).filter(
        Application.id == application.id,
        Application.status == ApplicationStatus.PENDING,
    ).update({Application.status: ApplicationStatus.APPROVED}, synchronize_session=False)
    if approved != 1:
        db.rollback()
        raise Conflict('Application is no longer pending.')

    filled = db.query(Tuition).filter(
        Tuition.id == tuition.id,
        Tuition.status == TuitionStatus.APPROVED,
    ).update(
        {
            Tuition.status: TuitionStatus.FILLED,
            Tuition.hired_tutor_email: application.tutor_email,
            Tuition.hired_tutor_name: application.tutor_name,
            Tuition.hired_at: now,
        },
        synchronize_session=False,
    )
    if filled != 1:
        db.rollback()
        raise Conflict('Tuition is no longer open for hiring.')


def finalize_payment(
    db: Session,
    context: AuthContext,
    application_id: int,
    price: float,
    transaction_id: str,
) -> HireResult:
    """Record a captured payment and hire the application's tutor.

    Replaying the same ``transaction_id`` returns the original hire without
    writing anything. The application and tuition are only moved if they are
    still ``pending`` and ``approved`` when written, so of two concurrent hires
    on one tuition exactly one commits and the other gets ``Conflict``.
    """
    if price is None or price <= 0:
        raise InvalidArgument('Price is required')
    if not transaction_id or not transaction_id.strip():
        raise InvalidArgument('Transaction id is required')
    transaction_id = transaction_id.strip()

    previous = db.query(Payment).filter(Payment.transaction_id == transaction_id).first()
    if previous is not None:
        return _replay_hire(db, context, previous, application_id)

    application, tuition = ensure_hireable(db, context, application_id)

    now = utcnow()
    try:
        _claim_hire(db, application, tuition, now)
    except SQLAlchemyError:
        db.rollback()
        raise

    payment = Payment(
        application_id=application.id,
        tuition_id=tuition.id,
        email=context.email,
        tutor_email=application.tutor_email,
        tutor_name=application.tutor_name,
        price=price,
        currency=config.PAYMENT_CURRENCY,
        transaction_id=transaction_id,
        created_at=now,
    )
    db.add(payment)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        previous = db.query(Payment).filter(Payment.transaction_id == transaction_id).first()
        if previous is None:
            raise
        return _replay_hire(db, context, previous, application_id)
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(payment)
    db.refresh(application)
    db.refresh(tuition)
    logger.info(
        'Hire completed: tuition %s filled by %s (transaction %s)',
        tuition.id,
        application.tutor_email,
        transaction_id,
    )
    return HireResult(payment=payment, application=application, tuition=tuition)
