"""Authenticated identity attached to connections and API callers."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class AuthUser(BaseModel):
    """Verified user reference decoded from an access token.

    Frozen: an identity never changes for the lifetime of a connection.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
