from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from etuition.auth.dependencies import AuthContext, require_admin
from etuition.core.schema import APIModel
from etuition.database import get_db
from etuition.services import queries

router = APIRouter(tags=['admin'])


class AdminStatsResponse(APIModel):
    users: int
    tuitions: int
    applications: int
    payments: int
    revenue: float


@router.get('/admin-stats', response_model=AdminStatsResponse)
def admin_stats(db: Session = Depends(get_db), _: AuthContext = Depends(require_admin)):
    return AdminStatsResponse(**queries.admin_stats(db))
