from pydantic import BaseModel, EmailStr, Field

from stemtrack.config import settings


class UserOut(BaseModel):
    id: str
    email: str
    is_active: bool
    email_verified: bool

    model_config = {"from_attributes": True}


# ── Sign-up ──────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=settings.password_min_length)


class RegisterResponse(BaseModel):
    """Account created; sign-in is blocked until the email is verified."""
    message: str
    user: UserOut
    dev_verification_token: str | None = None  # only when no SMTP is configured


class VerifyRequest(BaseModel):
    token: str


# ── Sign-in ──────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=settings.password_min_length)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
