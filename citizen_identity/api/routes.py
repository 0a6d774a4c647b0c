"""HTTP route definitions for citizen registration and login."""

from __future__ import annotations

from datetime import datetime
import logging

import jwt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..domain.account import PublicAccount
from ..domain.contracts import LoginInput, RegisterAccountInput
from ..domain.errors import DuplicateEmail, DuplicateUsername, InvalidCredentials
from ..domain.service import AccountService
from ..metrics import LOGINS, REGISTRATIONS
from ..security.tokens import decode_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

bearer_scheme = HTTPBearer(auto_error=False)


class AccountResponse(BaseModel):
    """Serialised public representation of an account."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    email: str
    username: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    role: str
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_domain(cls, account: PublicAccount) -> "AccountResponse":
        """Build a response model from the public account projection."""
        return cls(
            id=account.account_id,
            email=account.email,
            username=account.username,
            first_name=account.first_name,
            last_name=account.last_name,
            role=account.role,
            created_at=account.created_at,
        )


class RegisterRequest(BaseModel):
    """Payload accepted when a citizen signs up."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Bearer token and the authenticated account."""

    token: str
    user: AccountResponse


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_current_account_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int:
    """Decode the bearer token and return the account identifier it asserts."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        claims = decode_access_token(
            credentials.credentials,
            request.app.state.jwt_secret,
            request.app.state.jwt_issuer,
        )
        return int(claims["id"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
        logger.info("rejected bearer token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from exc


@router.post(
    "/users/register",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Register a citizen account."""
    try:
        account = service.register(
            RegisterAccountInput(
                email=payload.email,
                username=payload.username,
                password=payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
            )
        )
    except (DuplicateEmail, DuplicateUsername):
        REGISTRATIONS.labels(outcome="conflict").inc()
        raise
    REGISTRATIONS.labels(outcome="created").inc()
    return AccountResponse.from_domain(account)


@router.post("/users/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> LoginResponse:
    """Exchange email and password for a signed bearer token."""
    try:
        result = service.login(LoginInput(email=payload.email, password=payload.password))
    except InvalidCredentials:
        LOGINS.labels(outcome="invalid").inc()
        raise
    LOGINS.labels(outcome="success").inc()
    return LoginResponse(token=result.token, user=AccountResponse.from_domain(result.account))


@router.get("/users/me", response_model=AccountResponse)
def me(
    account_id: int = Depends(get_current_account_id),
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Return the account identified by the bearer token."""
    account = service.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return AccountResponse.from_domain(account)
