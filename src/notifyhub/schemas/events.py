"""Request/response schemas for the producer API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from notifyhub.events.types import NotificationType


class EmitRequest(BaseModel):
    event: str = Field(min_length=1)
    data: Any = None


class SendRequest(EmitRequest):
    model_config = ConfigDict(populate_by_name=True)

    # Optional here so an empty target gets the short-circuit, not a 422
    user_id: Optional[str] = Field(default=None, alias="userId")
    socket_id: Optional[str] = Field(default=None, alias="socketId")


class SendResponse(BaseModel):
    propagated: bool


class EmitResponse(BaseModel):
    receivers: int


class NotificationRequest(BaseModel):
    type: NotificationType
    target: str = Field(min_length=1)
    data: dict[str, Any]
    # EMIT_ALL to every viewer of the post instead of SEND to target
    broadcast: bool = False


class NotificationResponse(BaseModel):
    propagated: bool
    event: str
