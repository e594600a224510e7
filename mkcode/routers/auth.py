"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from mkcode.database import get_db
from mkcode.dependencies import get_services
from mkcode.schemas.auth import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RequestResetRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
    VerifyResetCodeRequest,
)
from mkcode.services.container import Services
from mkcode.services.credentials import AuthResult

logger = logging.getLogger("mkcode")

router = APIRouter(prefix="/api", tags=["Authentication"])


def _token_response(message: str, result: AuthResult) -> TokenResponse:
    return TokenResponse(message=message, token=result.token, user=UserResponse.model_validate(result.user))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Register a new user account."""
    result = services.credentials.register(db, body.name, body.email, body.password, background_tasks)
    return _token_response("User registered successfully", result)


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Authenticate and receive a bearer token."""
    result = services.credentials.login(db, body.email, body.password)
    return _token_response("Login successful", result)


@router.post("/request-reset", response_model=MessageResponse)
def request_reset(
    body: RequestResetRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Email a 6-digit reset code. The response never reveals whether the account exists."""
    return MessageResponse(message=services.codes.request_reset(db, body.email, background_tasks))


@router.post("/verify-reset-code", response_model=MessageResponse)
def verify_reset_code(
    body: VerifyResetCodeRequest,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Check a reset code without using it up."""
    services.codes.verify_code(db, body.email, body.code)
    return MessageResponse(message="Code verified successfully")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Use a reset code to set a new password."""
    services.codes.reset_password(db, body.email, body.code, body.new_password, background_tasks)
    return MessageResponse(message="Password reset successful! You can now login with your new password.")


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(
    body: VerifyEmailRequest,
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Confirm an email address with the token from the welcome email."""
    services.codes.verify_email(db, body.token)
    return MessageResponse(message="Email verified successfully")
