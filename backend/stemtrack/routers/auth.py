"""Auth routes: register, verify, login, logout.

Route overview:
  POST /register  create an account (unverified) and send the verification link
  POST /verify    confirm the email with the one-time token
  POST /login     email + password login (verified accounts only)
  POST /logout    revoke the current access token
  GET  /me        return the current user profile
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.deps import get_current_token, get_current_user
from stemtrack.auth.jwt import create_access_token
from stemtrack.auth.password import hash_password, verify_password
from stemtrack.auth import revocation
from stemtrack.auth.verification import (
    generate_verification_token,
    mail_configured,
    send_verification_email,
)
from stemtrack.database import get_db
from stemtrack.models.user import User
from stemtrack.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserOut,
    VerifyRequest,
)

router = APIRouter()

ALREADY_REGISTERED = "User already registered"


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.first() is not None


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an account. Sign-in stays blocked until the email is verified.

    An address that is already registered is refused with
    "User already registered" so the client can switch to sign-in.
    """
    email = body.email.lower()
    if await _email_taken(db, email):
        raise HTTPException(status_code=400, detail=ALREADY_REGISTERED)

    token = generate_verification_token()
    user = User(
        email=email,
        hashed_password=hash_password(body.password),
        email_verified=False,
        verification_token=token,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent sign-up for the same address committed first
        raise HTTPException(status_code=400, detail=ALREADY_REGISTERED)

    send_verification_email(user.email, token)

    return RegisterResponse(
        message="Account created. Check your email to verify your account, then sign in.",
        user=UserOut.model_validate(user),
        dev_verification_token=None if mail_configured() else token,
    )


# ── POST /verify ─────────────────────────────────────────────

@router.post("/verify", response_model=UserOut)
async def verify(body: VerifyRequest, db: AsyncSession = Depends(get_db)):
    """Confirm an email address with the token from the verification link."""
    result = await db.execute(
        select(User).where(User.verification_token == body.token)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    user.email_verified = True
    user.verification_token = None  # single use
    await db.flush()
    return UserOut.model_validate(user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Email + password login. Returns a JWT carrying the user's email."""
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid login credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")
    if not user.email_verified:
        raise HTTPException(status_code=403, detail="Email not confirmed")

    return TokenResponse(
        access_token=create_access_token(user_id=user.id, email=user.email),
        user=UserOut.model_validate(user),
    )


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    user: User = Depends(get_current_user),
    token: str = Depends(get_current_token),
):
    """Revoke the bearer token until it would have expired anyway."""
    payload: dict = getattr(user, "_token_payload", {})
    await revocation.revoke(token, float(payload.get("exp", 0)))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    """Return the current authenticated user's profile."""
    return UserOut.model_validate(user)
