"""Request/response schemas for authentication and account administration."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class RegisterRequest(BaseModel):
    """New account created by an administrator."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    email: EmailStr
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    role_code: str = Field(..., min_length=1, max_length=50)


class UpdateAccountRequest(BaseModel):
    """Profile update. role_code is optional; omit it to keep the current role."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    email: EmailStr
    role_code: str | None = Field(default=None, max_length=50)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class AdminChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class FreezeRequest(BaseModel):
    is_frozen: bool


class RevokeTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, max_length=200)
    reason: str | None = Field(default=None, max_length=200)


class RevokeAllRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=200)


class CurrentUser(BaseModel):
    """Identity extracted from a verified access token (no storage lookup)."""

    id: int
    username: str
    email: str = ""
    role: str
    first_name: str = ""
    last_name: str = ""
    role_name: str = ""


class AccountOut(BaseModel):
    """Account projection returned to callers (never includes the password hash)."""

    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    role_code: str
    is_frozen: bool
    last_login_at: datetime | None = None


class AccountsList(BaseModel):
    accounts: list[AccountOut]


class IssuedToken(BaseModel):
    """A credential value and its expiry; the transport decides where it goes."""

    token: str
    expires_at: datetime


class TokenPair(BaseModel):
    access_token: str
    access_token_expires_at: datetime
    refresh_token: str
    refresh_token_expires_at: datetime


class LoginResult(TokenPair):
    account: AccountOut


class RegisterResult(BaseModel):
    account_id: int
    username: str
    email: str
    role_code: str


class RevokeAllResult(BaseModel):
    revoked_count: int


class TokenResponse(BaseModel):
    """Access token body returned by login/refresh; the refresh token travels in a cookie."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: datetime
    account: AccountOut | None = None
