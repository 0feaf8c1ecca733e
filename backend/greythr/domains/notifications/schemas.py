from datetime import datetime
from typing import Any, Literal

from greythr.core.schemas import ResponseModel


class NotificationOut(ResponseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: Literal["info", "success", "warning", "error"]
    is_read: bool
    data: dict[str, Any] | None = None
    created_at: datetime | None = None


def notification_payload(notification) -> dict[str, Any]:
    return NotificationOut.model_validate(notification).model_dump(mode="json", by_alias=True)
