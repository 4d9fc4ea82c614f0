"""Sign-in / sign-up flow as the login screen drives it.

The flow holds the current mode. A sign-up for an address that already
exists flips the mode to sign-in instead of trying again; a successful
sign-up also lands on sign-in, since the account must be verified first.
"""

import logging

from stemtrack.client.api import StemTrackClient
from stemtrack.client.errors import BackendError, ValidationError

logger = logging.getLogger(__name__)

MODE_SIGNIN = "signin"
MODE_SIGNUP = "signup"

PASSWORD_MIN_LENGTH = 6

ALREADY_REGISTERED = "User already registered"
BAD_CREDENTIALS = "Invalid login credentials"


class AuthFlow:
    def __init__(self, api: StemTrackClient, mode: str = MODE_SIGNIN):
        self.api = api
        self.mode = mode

    def toggle(self) -> str:
        self.mode = MODE_SIGNUP if self.mode == MODE_SIGNIN else MODE_SIGNIN
        return self.mode

    async def submit(self, email: str, password: str) -> dict:
        """Run the current mode. Returns the API response body.

        Raises ValidationError for input the user has to fix, BackendError
        for anything else the server reports.
        """
        if len(password) < PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
            )

        if self.mode == MODE_SIGNIN:
            return await self._sign_in(email, password)
        return await self._sign_up(email, password)

    async def _sign_in(self, email: str, password: str) -> dict:
        try:
            return await self.api.login(email, password)
        except BackendError as e:
            if BAD_CREDENTIALS in e.message:
                raise ValidationError("Invalid email or password", e.status_code, e.code) from e
            raise

    async def _sign_up(self, email: str, password: str) -> dict:
        try:
            result = await self.api.register(email, password)
        except BackendError as e:
            if ALREADY_REGISTERED in e.message:
                self.mode = MODE_SIGNIN
                raise ValidationError(
                    "This email is already registered. Please sign in.", e.status_code, e.code
                ) from e
            raise

        logger.info("Account created for %s, awaiting verification", email)
        self.mode = MODE_SIGNIN
        return result

    async def sign_out(self) -> None:
        await self.api.logout()
