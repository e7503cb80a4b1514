"""Read-side views: filtered listings, joined application views, admin stats."""

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from etuition.core import config
from etuition.core.errors import InvalidArgument
from etuition.models.application import Application
from etuition.models.payment import Payment
from etuition.models.tuition import Tuition, TuitionStatus
from etuition.models.user import User, UserRole


def _like_pattern(term: str) -> str:
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def apply_search(query: Query, search: str | None) -> Query:
    term = (search or '').strip()
    if not term:
        return query
    pattern = _like_pattern(term)
    return query.filter(or_(
        Tuition.subject.ilike(pattern, escape='\\'),
        Tuition.location.ilike(pattern, escape='\\'),
    ))


def paginate(query: Query, page: int, limit: int) -> tuple[list, int]:
    if page < 1:
        raise InvalidArgument('Page must be 1 or greater.')
    if limit < 1 or limit > config.MAX_PAGE_SIZE:
        raise InvalidArgument(f'Limit must be between 1 and {config.MAX_PAGE_SIZE}.')

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def list_public_tuitions(
    db: Session,
    search: str | None = None,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
) -> tuple[list[Tuition], int]:
    query = db.query(Tuition).filter(Tuition.status == TuitionStatus.APPROVED)
    query = apply_search(query, search)
    query = query.order_by(Tuition.created_at.desc(), Tuition.id.desc())
    return paginate(query, page, limit)


def list_all_tuitions(
    db: Session,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
) -> tuple[list[Tuition], int]:
    query = db.query(Tuition)
    if status:
        if status not in TuitionStatus.ALL:
            raise InvalidArgument('Unknown tuition status.')
        query = query.filter(Tuition.status == status)
    query = apply_search(query, search)
    query = query.order_by(Tuition.created_at.desc(), Tuition.id.desc())
    return paginate(query, page, limit)


def list_student_tuitions(db: Session, email: str) -> list[Tuition]:
    return db.query(Tuition).filter(
        Tuition.student_email == email,
    ).order_by(Tuition.created_at.desc(), Tuition.id.desc()).all()


def received_applications(db: Session, owner_email: str) -> list[tuple[Application, Tuition]]:
    """Applications on postings owned by ``owner_email``, newest first."""
    return db.query(Application, Tuition).join(
        Tuition, Tuition.id == Application.tuition_id,
    ).filter(
        Tuition.student_email == owner_email,
    ).order_by(Application.applied_at.desc(), Application.id.desc()).all()


def tutor_applications(db: Session, tutor_email: str) -> list[tuple[Application, Tuition | None]]:
    """Applications sent by ``tutor_email``; the tuition is None once deleted."""
    return db.query(Application, Tuition).outerjoin(
        Tuition, Tuition.id == Application.tuition_id,
    ).filter(
        Application.tutor_email == tutor_email,
    ).order_by(Application.applied_at.desc(), Application.id.desc()).all()


def payer_history(db: Session, email: str) -> list[Payment]:
    return db.query(Payment).filter(Payment.email == email).order_by(
        Payment.created_at.desc(), Payment.id.desc(),
    ).all()


def tutor_payment_history(db: Session, tutor_email: str) -> list[Payment]:
    return db.query(Payment).filter(Payment.tutor_email == tutor_email).order_by(
        Payment.created_at.desc(), Payment.id.desc(),
    ).all()


def list_tutors(db: Session, limit: int | None = None) -> list[User]:
    query = db.query(User).filter(func.lower(User.role) == UserRole.TUTOR).order_by(User.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def admin_stats(db: Session) -> dict:
    revenue = db.query(func.coalesce(func.sum(Payment.price), 0)).scalar()
    return {
        'users': db.query(func.count(User.id)).scalar(),
        'tuitions': db.query(func.count(Tuition.id)).scalar(),
        'applications': db.query(func.count(Application.id)).scalar(),
        'payments': db.query(func.count(Payment.id)).scalar(),
        'revenue': float(revenue or 0),
    }
