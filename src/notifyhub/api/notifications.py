"""Notification hand-off from the notification service."""

from fastapi import APIRouter, Depends, HTTPException

from notifyhub.errors import BusUnavailable, InvalidNotification
from notifyhub.realtime.propagator import PropagationService, get_propagator
from notifyhub.schemas.events import NotificationRequest, NotificationResponse
from notifyhub.services.notification_relay import NotificationRelay

router = APIRouter()


@router.post("/notifications", response_model=NotificationResponse, status_code=202)
async def relay_notification(
    body: NotificationRequest,
    propagator: PropagationService = Depends(get_propagator),
):
    """Relay a stored notification to its target user's live connections."""
    relay = NotificationRelay(propagator)
    try:
        propagated, event = await relay.relay(
            body.type, body.target, body.data, broadcast=body.broadcast
        )
    except InvalidNotification as e:
        raise HTTPException(status_code=422, detail=str(e))
    except BusUnavailable as e:
        raise HTTPException(status_code=503, detail="Message bus unavailable") from e
    return NotificationResponse(propagated=propagated, event=event)
