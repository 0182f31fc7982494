"""Protocol definitions for the FT231X bridge.

Contains:
- Vendor control request codes and wire constants
- Timeout constants (configurable via envvars)
- TRACE logging level
- Endpoint / EndpointPair descriptors
- Protocols for the host collaborators (permission, connector, connection)
"""

import logging
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol, Sequence

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Vendor request, device recipient, host-to-device
REQTYPE_HOST_TO_DEVICE = 0x40

# Default FTDI vendor/product for the FT231X
FTDI_VID = 0x0403
FT231X_PID = 0x6015

# Timeouts for every control and bulk transfer (configurable via envvar)
CONTROL_TIMEOUT_MS = int(os.environ.get("FT231X_CONTROL_TIMEOUT_MS", "5000"))
BULK_TIMEOUT_MS = int(os.environ.get("FT231X_BULK_TIMEOUT_MS", "5000"))

# Every bulk-in transfer starts with 2 modem/line status bytes
STATUS_PREFIX_LENGTH = 2


class Request(IntEnum):
    """Vendor control request codes."""

    RESET = 0
    SET_BAUD_RATE = 3
    SET_DATA = 4


# wValue of the RESET request
RESET_ALL = 0

# wIndex used by the RESET and SET_DATA requests
PORT_INDEX = 1


class TransferType(IntEnum):
    """USB endpoint transfer types (bmAttributes bits 0..1)."""

    CONTROL = 0
    ISOCHRONOUS = 1
    BULK = 2
    INTERRUPT = 3


class Direction(IntEnum):
    """USB endpoint direction (bEndpointAddress bit 7)."""

    OUT = 0x00
    IN = 0x80


@dataclass(frozen=True)
class Endpoint:
    """One endpoint of the claimed interface."""

    address: int
    transfer_type: TransferType
    max_packet_size: int = 64

    @property
    def direction(self) -> Direction:
        return Direction(self.address & 0x80)

    def __str__(self) -> str:
        return f"EP 0x{self.address:02x} ({self.transfer_type.name.lower()} {self.direction.name})"


@dataclass(frozen=True)
class EndpointPair:
    """Bulk endpoints discovered for one open session."""

    in_: Endpoint
    out: Endpoint


class UsbConnection(Protocol):
    """Open, exclusively owned connection to the USB device."""

    def claim_interface(self, interface: int, force: bool) -> bool: ...
    def endpoints(self, interface: int) -> Sequence[Endpoint]: ...
    def control_transfer(
        self, request_type: int, request: int, value: int, index: int, timeout_ms: int
    ) -> int: ...
    async def bulk_read(self, endpoint: Endpoint, size: int, timeout_ms: int) -> bytes: ...
    async def bulk_write(self, endpoint: Endpoint, data: bytes, timeout_ms: int) -> int: ...
    def close(self) -> None: ...


class DeviceConnector(Protocol):
    """Turns a device reference into an open connection (or None)."""

    def open(self, device: Any) -> UsbConnection | None: ...


class PermissionBroker(Protocol):
    """Grants or denies access to a device; may suspend while asking."""

    async def request_access(self, device: Any) -> bool: ...
