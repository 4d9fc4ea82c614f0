"""Client side of StemTrack: API calls, local state, change feed, scanning.

Screens read from a LocalStore that is filled by one initial load and then
kept current only by change events, including events caused by this
client's own scans.
"""

from stemtrack.client.api import StemTrackClient
from stemtrack.client.errors import BackendError, ClientError, MalformedInputError, NotFoundError, ValidationError
from stemtrack.client.store import LocalStore

__all__ = [
    "StemTrackClient",
    "LocalStore",
    "ClientError",
    "MalformedInputError",
    "ValidationError",
    "NotFoundError",
    "BackendError",
]
