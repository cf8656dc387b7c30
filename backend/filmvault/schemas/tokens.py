"""
Token request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CreateActivationTokenRequest(BaseModel):
    email: Optional[str] = None

    model_config = ConfigDict(extra="forbid", strict=True)


class CreateAuthenticationTokenRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = ConfigDict(extra="forbid", strict=True)


class TokenResponse(BaseModel):
    token: str
    expiry: datetime


class AuthenticationTokenEnvelope(BaseModel):
    authentication_token: TokenResponse
