"""Producer API — push events into the cluster-wide fan-out.

For producers that don't share the gateway's process (other services,
ops tooling). Each call publishes one envelope on the backplane; every
gateway instance delivers it to its own matching connections.
"""

from fastapi import APIRouter, Depends, HTTPException

from notifyhub.errors import BusUnavailable
from notifyhub.realtime.propagator import PropagationService, get_propagator
from notifyhub.schemas.events import (
    EmitRequest,
    EmitResponse,
    SendRequest,
    SendResponse,
)

router = APIRouter(prefix="/events")


def _bus_unavailable() -> HTTPException:
    return HTTPException(status_code=503, detail="Message bus unavailable")


@router.post("/send", response_model=SendResponse, status_code=202)
async def send_event(
    body: SendRequest,
    propagator: PropagationService = Depends(get_propagator),
):
    """Send an event to every connection of one user."""
    try:
        propagated = await propagator.propagate_event(
            event=body.event,
            data=body.data,
            user_id=body.user_id,
            socket_id=body.socket_id,
        )
    except BusUnavailable as e:
        raise _bus_unavailable() from e
    return SendResponse(propagated=propagated)


@router.post("/emit-all", response_model=EmitResponse, status_code=202)
async def emit_all(
    body: EmitRequest,
    propagator: PropagationService = Depends(get_propagator),
):
    """Broadcast to every open connection, authenticated or not."""
    try:
        receivers = await propagator.emit_to_all(body.event, body.data)
    except BusUnavailable as e:
        raise _bus_unavailable() from e
    return EmitResponse(receivers=receivers)


@router.post("/emit-authenticated", response_model=EmitResponse, status_code=202)
async def emit_authenticated(
    body: EmitRequest,
    propagator: PropagationService = Depends(get_propagator),
):
    """Broadcast to every authenticated connection."""
    try:
        receivers = await propagator.emit_to_authenticated(body.event, body.data)
    except BusUnavailable as e:
        raise _bus_unavailable() from e
    return EmitResponse(receivers=receivers)
