"""FastAPI dependencies for authentication.

Dependencies:
  get_current_user   → decode JWT, reject revoked tokens, load the User
  get_current_token  → the raw bearer token (for sign-out)
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.jwt import decode_token
from stemtrack.auth import revocation
from stemtrack.database import get_db
from stemtrack.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_token(token: str = Depends(oauth2_scheme)) -> str:
    return token


async def resolve_user(token: str, db: AsyncSession) -> User | None:
    """Return the active, verified user a token belongs to, or None."""
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        return None
    if await revocation.is_revoked(token):
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active or not user.email_verified:
        return None

    user._token_payload = payload  # type: ignore[attr-defined]
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user, and return it.

    Also stashes the decoded payload on the user object as `_token_payload`
    so sign-out can read the expiry without re-decoding.
    """
    user = await resolve_user(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
