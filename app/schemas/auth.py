"""Request/response schemas for auth endpoints."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(BaseModel):
    """Credentials for login; identifier is an email address or a username."""

    identifier: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Email or username",
        validation_alias=AliasChoices("identifier", "emailOrUserName"),
    )
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class SessionUser(BaseModel):
    """User as returned to clients (never includes the password hash)."""

    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    age: int | None = None
    role_id: int | None = None
    is_verified: bool
    is_logged_in: bool
    status: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    """Session id and access token pair returned after a successful login."""

    message: str = "Login successful"
    session_id: str = Field(..., description="Send as the X-Session-Id header")
    access_token: str = Field(..., description="Send as Authorization: Bearer <token>")
    token_type: str = Field(default="bearer", description="Token type")
    expires_at: datetime
    user: SessionUser


class TokenRefreshResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class MessageResponse(BaseModel):
    message: str


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class ChangePasswordResponse(BaseModel):
    message: str = "Password changed successfully"
    sessions_invalidated: int


class EmailRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)


class OtpVerifyRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    otp: str = Field(..., min_length=4, max_length=10)


class OtpVerifyResponse(BaseModel):
    valid: bool


class ResetPasswordRequest(BaseModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    otp: str = Field(..., min_length=4, max_length=10)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)


class OtpIssuedResponse(BaseModel):
    message: str = "If the address belongs to an account, a code has been sent"
    expires_in_minutes: int
