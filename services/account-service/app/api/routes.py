"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from pydantic import BaseModel, Field

from schemas import AccountProfile, AccountSummary

from ..domain.account import AccountProjection
from ..domain.contracts import PasswordChangeInput, ProfileUpdateInput, SignupInput
from ..domain.errors import (
    AccountNotFoundError,
    AccountServiceError,
    EmailTakenError,
    InvalidCredentialsError,
    StorageUnavailableError,
    UnauthorizedError,
    ValidationFailedError,
    WeakPasswordError,
    WrongOldPasswordError,
)
from ..domain.service import AccountService
from ..security.session import resolve_session
from ..security.tokens import SessionClaims, TokenService

logger = logging.getLogger(__name__)

router = APIRouter()

ERRORS = Counter("account_service_errors", "Domain errors rendered to clients", ["code"])
LOGINS = Counter("account_service_logins", "Successful logins")

INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again later."

_STATUS_BY_ERROR: dict[type[AccountServiceError], int] = {
    ValidationFailedError: status.HTTP_400_BAD_REQUEST,
    WeakPasswordError: status.HTTP_400_BAD_REQUEST,
    EmailTakenError: status.HTTP_400_BAD_REQUEST,
    WrongOldPasswordError: status.HTTP_400_BAD_REQUEST,
    InvalidCredentialsError: status.HTTP_401_UNAUTHORIZED,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    AccountNotFoundError: status.HTTP_404_NOT_FOUND,
    StorageUnavailableError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class SignupRequest(BaseModel):
    """Registration form submitted by a new user."""

    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UpdateProfileRequest(BaseModel):
    name: str = ""
    email: str = ""


class ChangePasswordRequest(BaseModel):
    """Password change form; all three fields are required."""

    old_password: str = Field(default="", alias="oldPassword")
    new_password: str = Field(default="", alias="newPassword")
    confirm_new_password: str = Field(default="", alias="confirmNewPassword")


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(MessageResponse):
    """Envelope carrying the public account projection."""

    user: AccountProfile


class LoginResponse(MessageResponse):
    """Bearer token plus the identity it was issued for."""

    token: str
    user: AccountSummary


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_token_service(request: Request) -> TokenService:
    tokens: TokenService = request.app.state.token_service
    return tokens


def require_session(
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> SessionClaims:
    """Dependency guarding protected routes with a verified bearer token."""
    return resolve_session(authorization, tokens)


def _profile(account: AccountProjection) -> AccountProfile:
    return AccountProfile(
        id=account.account_id,
        name=account.name,
        email=account.email,
        created_at=account.created_at,
    )


@router.post("/signup", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    """Register an account and return its public profile."""
    account = service.signup(
        SignupInput(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            confirm_password=payload.confirm_password,
        )
    )
    return ProfileResponse(message="User registered successfully.", user=_profile(account))


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> LoginResponse:
    """Exchange email and password for a 24-hour bearer token."""
    result = service.login(payload.email, payload.password)
    LOGINS.inc()
    account = result.account
    return LoginResponse(
        message="Login successful.",
        token=result.token,
        user=AccountSummary(id=account.account_id, name=account.name, email=account.email),
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    session: SessionClaims = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    account = service.get_profile(session.account_id)
    return ProfileResponse(message="Profile loaded.", user=_profile(account))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: UpdateProfileRequest,
    session: SessionClaims = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> ProfileResponse:
    """Replace the caller's display name and email."""
    account = service.update_profile(
        ProfileUpdateInput(account_id=session.account_id, name=payload.name, email=payload.email)
    )
    return ProfileResponse(message="Profile updated successfully.", user=_profile(account))


@router.put("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    session: SessionClaims = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    service.change_password(
        PasswordChangeInput(
            account_id=session.account_id,
            old_password=payload.old_password,
            new_password=payload.new_password,
            confirm_new_password=payload.confirm_new_password,
        )
    )
    return MessageResponse(message="Password changed successfully.")


def install_exception_handlers(app: FastAPI) -> None:
    """Render every failure as a ``{"message": ...}`` envelope."""
    app.add_exception_handler(AccountServiceError, _handle_service_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)


def _handle_service_error(request: Request, exc: AccountServiceError) -> JSONResponse:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    ERRORS.labels(code=exc.code).inc()
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(status_code=status_code, content={"message": INTERNAL_ERROR_MESSAGE})
    return JSONResponse(status_code=status_code, content={"message": exc.message})


def _handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s rejected malformed body", request.method, request.url.path)
    ERRORS.labels(code=ValidationFailedError.code).inc()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": ValidationFailedError.default_message},
    )


def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": INTERNAL_ERROR_MESSAGE},
    )
