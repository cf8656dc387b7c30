"""
Token Service — /v1/tokens
──────────────────────────
Endpoints:
  POST /v1/tokens/activation      — Re-send an activation token
  POST /v1/tokens/authentication  — Exchange email + password for a bearer token
"""
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from filmvault.api.errors import failed_validation, invalid_credentials
from filmvault.core.security import (
    SCOPE_ACTIVATION,
    SCOPE_AUTHENTICATION,
    Password,
    validate_password_plaintext,
)
from filmvault.core.validator import Validator
from filmvault.db.session import get_db
from filmvault.deps.body import json_body
from filmvault.schemas.movies import MessageResponse
from filmvault.schemas.tokens import (
    AuthenticationTokenEnvelope,
    CreateActivationTokenRequest,
    CreateAuthenticationTokenRequest,
    TokenResponse,
)
from filmvault.services.errors import RecordNotFoundError
from filmvault.services.token_service import new_token
from filmvault.services.user_service import get_user_by_email, validate_email

router = APIRouter()


@router.post("/activation", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def create_activation_token(
    request: Request,
    payload: CreateActivationTokenRequest = Depends(json_body(CreateActivationTokenRequest)),
    db: Session = Depends(get_db),
) -> MessageResponse:
    email = payload.email or ""

    v = Validator()
    validate_email(v, email)
    if not v.valid():
        raise failed_validation(v.errors)

    try:
        user = get_user_by_email(db, email)
    except RecordNotFoundError as exc:
        v.add_error("email", "no matching email address found")
        raise failed_validation(v.errors) from exc

    if user.activated:
        v.add_error("email", "user has already been activated")
        raise failed_validation(v.errors)

    config = request.app.state.settings
    token = new_token(db, user.id, timedelta(hours=config.ACTIVATION_TOKEN_TTL_HOURS), SCOPE_ACTIVATION)

    request.app.state.background.submit(
        request.app.state.mailer.send,
        user.email,
        "token_activation.j2",
        {"activation_token": token.plaintext},
    )

    return MessageResponse(message="an email will be sent to you containing activation instructions")


@router.post(
    "/authentication",
    response_model=AuthenticationTokenEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_authentication_token(
    request: Request,
    payload: CreateAuthenticationTokenRequest = Depends(json_body(CreateAuthenticationTokenRequest)),
    db: Session = Depends(get_db),
) -> AuthenticationTokenEnvelope:
    """
    Unknown email and wrong password get the same 401 so the endpoint does
    not reveal which addresses are registered.
    """
    email = payload.email or ""
    plaintext = payload.password or ""

    v = Validator()
    validate_email(v, email)
    validate_password_plaintext(v, plaintext)
    if not v.valid():
        raise failed_validation(v.errors)

    try:
        user = get_user_by_email(db, email)
    except RecordNotFoundError as exc:
        raise invalid_credentials() from exc

    if not Password(user.password_hash).matches(plaintext):
        raise invalid_credentials()

    config = request.app.state.settings
    token = new_token(db, user.id, timedelta(hours=config.AUTHENTICATION_TOKEN_TTL_HOURS), SCOPE_AUTHENTICATION)

    return AuthenticationTokenEnvelope(
        authentication_token=TokenResponse(token=token.plaintext, expiry=token.expiry),
    )
