"""Common modules for the FT231X bridge.

This package contains the chip protocol and host-side pieces:
- protocol: Request codes, timeouts, Endpoint types, collaborator Protocols
- errors: Error taxonomy
- config: PortConfig, Parity, StopBits
- baudrate: Baud rate divisor encoding
- linecontrol: Line control word encoding
- device: pyusb-backed device lookup, permission and connection

device is not re-exported here so the pure encoders import without pyusb.
"""

from common.baudrate import BaudEncoding, encode_baudrate
from common.config import Parity, PortConfig, StopBits
from common.errors import (
    BridgeError,
    ConnectFailed,
    EndpointsMissing,
    InvalidArgument,
    IOFailure,
    NotConnected,
    PermissionDenied,
    TransferCancelled,
    UnsupportedOperation,
    UnsupportedRate,
)
from common.linecontrol import encode_line_control
from common.protocol import (
    STATUS_PREFIX_LENGTH,
    DeviceConnector,
    Endpoint,
    EndpointPair,
    PermissionBroker,
    Request,
    UsbConnection,
)

__all__ = [
    # Protocol
    "Request",
    "Endpoint",
    "EndpointPair",
    "UsbConnection",
    "DeviceConnector",
    "PermissionBroker",
    "STATUS_PREFIX_LENGTH",
    # Config
    "PortConfig",
    "Parity",
    "StopBits",
    # Encoders
    "BaudEncoding",
    "encode_baudrate",
    "encode_line_control",
    # Exceptions
    "BridgeError",
    "ConnectFailed",
    "EndpointsMissing",
    "InvalidArgument",
    "IOFailure",
    "NotConnected",
    "PermissionDenied",
    "TransferCancelled",
    "UnsupportedOperation",
    "UnsupportedRate",
]
