"""Lifecycle states of a bridge port.

Each state carries only the fields that are valid in it:
- Closed: no connection
- Connecting: permission requested / connection being acquired
- Configuring: connection open, chip being reset and configured
- Ready: configured, bulk endpoints known
"""

from dataclasses import dataclass
from typing import Any

from common.protocol import EndpointPair, UsbConnection


@dataclass(frozen=True)
class Closed:
    """No connection held."""


@dataclass(frozen=True)
class Connecting:
    """Waiting for permission or for the connection to be acquired."""

    device: Any


@dataclass(frozen=True)
class Configuring:
    """Connection open; reset and configuration in progress."""

    connection: UsbConnection


@dataclass(frozen=True)
class Ready:
    """Port open and configured.

    Attributes:
        connection: Open device connection (owned by the port).
        endpoints: Bulk IN/OUT endpoints of the claimed interface.
        effective_baudrate: Baud rate the chip actually runs at.
    """

    connection: UsbConnection
    endpoints: EndpointPair
    effective_baudrate: int


PortState = Closed | Connecting | Configuring | Ready
