"""Scan sessions: camera → decoder → one transition → notification.

A session owns the camera for its whole life. It takes the first decoded
token, resets the decoder so the same code cannot fire twice, sends the
matching API call, notifies the user once, and releases the camera after
a short delay so the decoded value stays visible. Cancellation and decode
errors release the camera at once.

Decoding itself is a capability (FrameDecoder); any barcode library that
can yield strings from a frame source fits. SimulatedDecoder produces the
demo build's mock barcodes from the current LocalStore.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Protocol

from stemtrack.client.api import StemTrackClient
from stemtrack.client.errors import ClientError
from stemtrack.client.store import LocalStore
from stemtrack.config import settings

logger = logging.getLogger(__name__)

MODE_INVENTORY = "inventory"
MODE_CHECKOUT = "checkout"
MODE_LINE = "line"
MODE_OUTPUT = "output"

SCAN_MODES = (MODE_INVENTORY, MODE_CHECKOUT, MODE_LINE, MODE_OUTPUT)
LINE_MODES = (MODE_LINE, MODE_OUTPUT)

CAMERA_DENIED = "Camera access denied. Please enable camera permissions."


class CameraUnavailableError(Exception):
    """The camera could not be opened (permission refused, no device)."""


class DecodeError(Exception):
    """The decoder failed while reading frames."""


class FrameSource(Protocol):
    async def start(self) -> None: ...

    def stop(self) -> None: ...


class FrameDecoder(Protocol):
    def decode(self, source: FrameSource) -> AsyncIterator[str]:
        """Lazily yield decoded strings for as long as frames arrive."""
        ...

    def reset(self) -> None: ...


@dataclass
class ScanResult:
    token: str
    ok: bool
    message: str
    response: Any = None


class ScanSession:
    def __init__(
        self,
        api: StemTrackClient,
        mode: str,
        camera: FrameSource,
        decoder: FrameDecoder,
        notify: Callable[[str], None],
        line_id: int | None = None,
        close_delay: float | None = None,
    ):
        if mode not in SCAN_MODES:
            raise ValueError(f"Unknown scan mode: {mode}")
        if mode in LINE_MODES and line_id is None:
            raise ValueError(f"Scan mode {mode!r} needs a line")
        self.api = api
        self.mode = mode
        self.camera = camera
        self.decoder = decoder
        self.notify = notify
        self.line_id = line_id
        self.close_delay = settings.scan_close_delay_seconds if close_delay is None else close_delay
        self.camera_open = False
        self.last_token: str | None = None

    async def run(self) -> ScanResult | None:
        """Scan one code and apply it. Returns None if nothing was scanned."""
        try:
            await self.camera.start()
        except (CameraUnavailableError, PermissionError) as e:
            logger.warning(f"Camera error: {e}")
            self.notify(CAMERA_DENIED)
            return None
        self.camera_open = True

        try:
            async for token in self.decoder.decode(self.camera):
                self.decoder.reset()
                self.last_token = token
                result = await self._dispatch(token)
                self.notify(result.message)
                await asyncio.sleep(self.close_delay)
                return result
        except DecodeError as e:
            logger.warning(f"Decode error: {e}")
        finally:
            self.release()
        return None

    def release(self) -> None:
        if self.camera_open:
            self.camera.stop()
            self.camera_open = False
        self.decoder.reset()

    async def _dispatch(self, token: str) -> ScanResult:
        try:
            if self.mode == MODE_INVENTORY:
                response = await self.api.add_to_inventory(token)
            elif self.mode == MODE_CHECKOUT:
                response = await self.api.checkout_box(token)
            elif self.mode == MODE_LINE:
                response = await self.api.assign_to_line(token, self.line_id)
            else:
                response = await self.api.complete_bunch(token, self.line_id)
        except ClientError as e:
            return ScanResult(token, False, f"Error processing barcode: {e.message}")
        return ScanResult(token, True, f"✓ {response['message']}", response)


# ── Demo mode ────────────────────────────────────────────────

class SimulatedCamera:
    """Stands in for a device camera; nothing to open or close."""

    def __init__(self):
        self.running = False

    async def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False


class SimulatedDecoder:
    """Yields one mock barcode for the scan mode, picked from the store.

    Intake gets a fixed label, checkout and line scans take the first box
    still in inventory, output scans number the next bunch.
    """

    INTAKE_LABEL = "ROSES|PINK|180|STEMS"

    def __init__(self, store: LocalStore, mode: str):
        self.store = store
        self.mode = mode
        self.resets = 0

    def mock_barcode(self) -> str | None:
        if self.mode == MODE_INVENTORY:
            return self.INTAKE_LABEL
        if self.mode in (MODE_CHECKOUT, MODE_LINE):
            in_stock = [b for b in self.store.boxes if b.get("location") == "inventory"]
            return in_stock[0]["id"] if in_stock else None
        return f"BUN{len(self.store.bunches) + 1:03d}"

    async def decode(self, source: FrameSource) -> AsyncIterator[str]:
        barcode = self.mock_barcode()
        if barcode is not None:
            yield barcode

    def reset(self) -> None:
        self.resets += 1
