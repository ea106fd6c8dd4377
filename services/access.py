"""Event-admin checks shared by the pipeline services."""
from typing import Optional

from errors import AuthorizationError
from repositories.base import EventRepository


def require_event_admin(events: EventRepository, auth_id: Optional[str], event_id: int) -> None:
    """Raise AuthorizationError unless ``auth_id`` administers the event.

    ``auth_id=None`` means a trusted internal caller (worker, tests) and skips the check.
    """
    if auth_id is None:
        return
    if not events.is_event_admin(auth_id, event_id):
        raise AuthorizationError("User is not authorized to manage tickets for this event")
