"""Client error taxonomy.

Each error carries one human-readable message meant for a single user
notification. Errors end the action that raised them; nothing retries.
"""

import httpx

_CODE_MAP: dict[str, type["ClientError"]] = {}


class ClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None, code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class MalformedInputError(ClientError):
    """Scanned intake label does not match TYPE|COLOR|QUANTITY|UNIT."""


class ValidationError(ClientError):
    """Empty recipe name or composition, or unusable sign-in input."""


class NotFoundError(ClientError):
    """Referenced box, line or recipe does not exist."""


class BackendError(ClientError):
    """Any other store or auth failure; the server message is kept as-is."""


_CODE_MAP.update({
    "MALFORMED_INPUT": MalformedInputError,
    "VALIDATION_ERROR": ValidationError,
    "RESOURCE_NOT_FOUND": NotFoundError,
})


def error_from_response(response: httpx.Response) -> ClientError:
    """Build the matching ClientError from an error response body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message") or response.reason_phrase
    else:
        code = None
        message = response.text or response.reason_phrase

    cls = _CODE_MAP.get(code, BackendError)
    return cls(message, status_code=response.status_code, code=code)
