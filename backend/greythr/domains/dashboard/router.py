from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from greythr.api.deps import get_current_user, is_privileged
from greythr.db.session import get_session
from greythr.domains.dashboard import service
from greythr.domains.employees import service as employee_service
from greythr.models import User

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
def dashboard_stats(user: User = Depends(get_current_user), db: Session = Depends(get_session)) -> dict:
    if is_privileged(user):
        return {"success": True, "scope": "organisation", "data": service.organisation_stats(db)}
    employee = employee_service.get_by_user_id(db, user.id)
    return {"success": True, "scope": "personal", "data": service.personal_stats(db, employee)}
