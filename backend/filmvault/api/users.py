"""
User Service — /v1/users
────────────────────────
Endpoints:
  POST /v1/users            — Register; emails an activation token
  PUT  /v1/users/activated  — Activate an account with that token
"""
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from filmvault.api.errors import edit_conflict, failed_validation
from filmvault.core.security import SCOPE_ACTIVATION, Password, validate_token_plaintext
from filmvault.core.validator import Validator
from filmvault.db.models import User
from filmvault.db.session import get_db
from filmvault.deps.body import json_body
from filmvault.schemas.users import ActivateUserRequest, RegisterUserRequest, UserEnvelope, UserResponse
from filmvault.services.errors import DuplicateEmailError, EditConflictError, RecordNotFoundError
from filmvault.services.permission_service import MOVIES_READ, add_for_user
from filmvault.services.token_service import delete_all_for_user, new_token
from filmvault.services.user_service import get_user_for_token, insert_user, update_user, validate_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_202_ACCEPTED)
def register_user(
    request: Request,
    payload: RegisterUserRequest = Depends(json_body(RegisterUserRequest)),
    db: Session = Depends(get_db),
) -> UserEnvelope:
    """
    Create an inactive account with movies:read, then email the activation
    token in the background. The response does not wait for the email.
    """
    user = User(name=payload.name or "", email=payload.email or "", activated=False)

    password = Password()
    password.set(payload.password or "")
    user.password_hash = password.hash

    v = Validator()
    validate_user(v, user, password)
    if not v.valid():
        raise failed_validation(v.errors)

    try:
        user = insert_user(db, user)
    except DuplicateEmailError as exc:
        v.add_error("email", "a user with this email address already exists")
        raise failed_validation(v.errors) from exc

    add_for_user(db, user.id, MOVIES_READ)

    config = request.app.state.settings
    token = new_token(db, user.id, timedelta(hours=config.ACTIVATION_TOKEN_TTL_HOURS), SCOPE_ACTIVATION)

    request.app.state.background.submit(
        request.app.state.mailer.send,
        user.email,
        "user_welcome.j2",
        {"activation_token": token.plaintext, "user_id": user.id},
    )
    logger.info("Registered user %s", user.id)

    return UserEnvelope(user=UserResponse.model_validate(user))


@router.put("/activated", response_model=UserEnvelope)
def activate_user(
    payload: ActivateUserRequest = Depends(json_body(ActivateUserRequest)),
    db: Session = Depends(get_db),
) -> UserEnvelope:
    token = payload.token or ""

    v = Validator()
    validate_token_plaintext(v, token)
    if not v.valid():
        raise failed_validation(v.errors)

    try:
        user = get_user_for_token(db, SCOPE_ACTIVATION, token)
    except RecordNotFoundError as exc:
        v.add_error("token", "invalid or expired activation token")
        raise failed_validation(v.errors) from exc

    user.activated = True
    try:
        user = update_user(db, user)
    except EditConflictError as exc:
        raise edit_conflict() from exc

    delete_all_for_user(db, SCOPE_ACTIVATION, user.id)

    return UserEnvelope(user=UserResponse.model_validate(user))
