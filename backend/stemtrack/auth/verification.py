"""Email verification for new accounts.

Flow:
  1. POST /api/auth/register stores the user unverified with a one-time
     token and mails a verification link.
  2. The link lands on POST /api/auth/verify with that token.
  3. Only then does POST /api/auth/login issue a JWT.

In development (no SMTP host configured) nothing is mailed; the token is
returned in the registration response instead.
"""

import logging
import secrets
import smtplib
from email.message import EmailMessage

from stemtrack.config import settings

logger = logging.getLogger(__name__)

TOKEN_BYTES = 24


def generate_verification_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def mail_configured() -> bool:
    return bool(settings.smtp_host)


def send_verification_email(email: str, token: str) -> None:
    """Mail the verification link (skipped in dev if no SMTP configured)."""
    link = f"{settings.verification_url}?token={token}"
    if not mail_configured():
        logger.info("SMTP not configured; verification link for %s: %s", email, link)
        return

    message = EmailMessage()
    message["Subject"] = "Confirm your StemTrack account"
    message["From"] = settings.smtp_from
    message["To"] = email
    message.set_content(
        "Welcome to StemTrack.\n\n"
        f"Confirm your email address to start scanning:\n{link}\n"
    )
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as smtp:
        smtp.send_message(message)
    logger.info("Verification email sent to %s", email)
