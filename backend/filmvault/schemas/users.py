"""
User request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RegisterUserRequest(BaseModel):
    """Payload for POST /v1/users."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = ConfigDict(extra="forbid", strict=True)


class ActivateUserRequest(BaseModel):
    """Payload for PUT /v1/users/activated."""

    token: Optional[str] = None

    model_config = ConfigDict(extra="forbid", strict=True)


class UserResponse(BaseModel):
    """Public view of a user. The password hash and version never leave the server."""

    id: int
    created_at: datetime
    name: str
    email: str
    activated: bool

    model_config = ConfigDict(from_attributes=True)


class UserEnvelope(BaseModel):
    user: UserResponse
