"""Event envelopes moved over the backplane.

Each channel carries exactly one envelope kind, so the channel name is the
tag of the union:

    SOCKET_EVENT_SEND               → SendEnvelope (userId required)
    SOCKET_EVENT_EMIT_ALL           → EmitAllEnvelope
    SOCKET_EVENT_EMIT_AUTHENTICATED → EmitAuthenticatedEnvelope

Wire keys are camelCase (userId, socketId) so producers written in other
languages can publish directly. Unknown keys are ignored on receipt.
"""

from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SOCKET_EVENT_SEND = "SOCKET_EVENT_SEND"
SOCKET_EVENT_EMIT_ALL = "SOCKET_EVENT_EMIT_ALL"
SOCKET_EVENT_EMIT_AUTHENTICATED = "SOCKET_EVENT_EMIT_AUTHENTICATED"


class _Envelope(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    channel: ClassVar[str]

    event: str = Field(min_length=1)
    data: Any = None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict, optional fields omitted when unset."""
        payload = self.model_dump(mode="json", by_alias=True)
        if payload.get("socketId", "") is None:
            del payload["socketId"]
        return payload


class SendEnvelope(_Envelope):
    """Deliver to every connection of one user, optionally minus the sender."""

    channel: ClassVar[str] = SOCKET_EVENT_SEND

    user_id: str = Field(alias="userId", min_length=1)
    socket_id: Optional[str] = Field(default=None, alias="socketId")


class EmitAllEnvelope(_Envelope):
    """Deliver to every open connection."""

    channel: ClassVar[str] = SOCKET_EVENT_EMIT_ALL


class EmitAuthenticatedEnvelope(_Envelope):
    """Deliver to every authenticated connection."""

    channel: ClassVar[str] = SOCKET_EVENT_EMIT_AUTHENTICATED


Envelope = Union[SendEnvelope, EmitAllEnvelope, EmitAuthenticatedEnvelope]

ENVELOPE_TYPES: dict[str, type[_Envelope]] = {
    model.channel: model
    for model in (SendEnvelope, EmitAllEnvelope, EmitAuthenticatedEnvelope)
}

CHANNELS = tuple(ENVELOPE_TYPES)


def decode_envelope(channel: str, payload: Any) -> Envelope:
    """Validate a received payload against its channel's envelope kind.

    Raises KeyError for an unknown channel and pydantic.ValidationError
    when required fields are missing or mistyped.
    """
    return ENVELOPE_TYPES[channel].model_validate(payload)
