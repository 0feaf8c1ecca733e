from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from greythr.api.routes import health
from greythr.core.config import settings
from greythr.core.errors import register_exception_handlers
from greythr.core.logging import configure_logging, get_logger
from greythr.core.monitoring import configure_error_monitoring
from greythr.core.observability import configure_observability
from greythr.domains.announcements.router import router as announcement_router
from greythr.domains.attendance.router import router as attendance_router
from greythr.domains.auth.router import router as auth_router
from greythr.domains.chat.router import router as chat_router
from greythr.domains.dashboard.router import router as dashboard_router
from greythr.domains.employees.router import router as employee_router
from greythr.domains.leave.router import router as leave_router
from greythr.domains.notifications.router import router as notification_router
from greythr.domains.payroll.router import router as payroll_router
from greythr.domains.tasks.router import router as task_router
from greythr.realtime.hub import ChannelHub
from greythr.realtime.router import router as realtime_router

configure_logging(settings.log_level, json=settings.log_json)
configure_observability()
configure_error_monitoring()
logger = get_logger(__name__)

app = FastAPI(title=settings.app_name)
app.state.hub = ChannelHub()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(health.router)
app.include_router(auth_router)
app.include_router(employee_router)
app.include_router(attendance_router)
app.include_router(leave_router)
app.include_router(payroll_router)
app.include_router(task_router)
app.include_router(announcement_router)
app.include_router(notification_router)
app.include_router(chat_router)
app.include_router(dashboard_router)
app.include_router(realtime_router)


@app.on_event("startup")
def startup_event() -> None:
    logger.info("startup_complete", env=settings.env, cors_origins=settings.cors_origin_list)


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "GreytHR API running", "environment": settings.env}
