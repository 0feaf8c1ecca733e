from typing import Any, Iterable

from greythr.domains.notifications.schemas import notification_payload
from greythr.models import Notification
from greythr.realtime.hub import ChannelHub

NotificationEvent = tuple[int, dict[str, Any]]


def notification_events(notifications: Iterable[Notification | None]) -> list[NotificationEvent]:
    """Render committed notifications for their user rooms.

    Attribute access may hit the database, so call this on the thread that
    owns the session.
    """
    return [(n.user_id, notification_payload(n)) for n in notifications if n is not None]


async def push_events(hub: ChannelHub, events: Iterable[NotificationEvent]) -> None:
    for user_id, payload in events:
        await hub.notify_user(user_id, payload)
