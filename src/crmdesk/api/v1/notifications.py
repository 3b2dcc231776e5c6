"""REST endpoint draining transient user-visible messages."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.crmdesk.api.deps import get_notifier
from src.crmdesk.notifications import Notification, Notifier

router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=list[Notification])
async def drain_notifications(
    notifier: Notifier = Depends(get_notifier),
) -> list[Notification]:
    """Return pending messages once; they are cleared after being read."""
    return notifier.drain()
