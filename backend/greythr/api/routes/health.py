from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from greythr.core.config import settings
from greythr.db.session import get_session

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Liveness probe")
def healthcheck(request: Request, db: Session = Depends(get_session)) -> dict[str, str | int]:
    db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "environment": settings.env,
        "connections": request.app.state.hub.connection_count,
    }
