import sentry_sdk

from greythr.core.config import settings
from greythr.core.errors import AppError


def drop_client_errors(event, hint):
    """4xx ``AppError``s are expected outcomes, not incidents."""
    exc_info = hint.get("exc_info")
    if exc_info and isinstance(exc_info[1], AppError) and exc_info[1].status_code < 500:
        return None
    return event


def configure_error_monitoring() -> None:
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.env,
        traces_sample_rate=0.2,
        send_default_pii=False,
        before_send=drop_client_errors,
    )
