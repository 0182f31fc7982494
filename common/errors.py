"""Error taxonomy for the FT231X bridge.

All errors derive from serial.SerialException so code written against
pyserial ports can handle bridge failures the same way.
"""

import serial


class BridgeError(serial.SerialException):
    """Base class for all bridge errors."""

    pass


class NotConnected(BridgeError):
    """Raised when configuration or I/O is attempted without a connection."""

    pass


class InvalidArgument(BridgeError, ValueError):
    """Raised for out-of-domain values (baud rate <= 0, unknown enum values)."""

    pass


class UnsupportedOperation(BridgeError):
    """Raised for in-domain values the chip driver does not implement."""

    pass


class UnsupportedRate(UnsupportedOperation):
    """Raised when no divisor approximates the requested baud rate."""

    pass


class ConnectFailed(BridgeError):
    """Raised when the device connection could not be acquired."""

    pass


class PermissionDenied(ConnectFailed):
    """Raised when the host refuses access to the device."""

    pass


class EndpointsMissing(BridgeError):
    """Raised when the interface lacks a bulk IN or bulk OUT endpoint."""

    pass


class TransferCancelled(BridgeError):
    """Raised when a read or write is aborted by its cancel signal."""

    pass


class IOFailure(BridgeError):
    """Raised when a transfer returns a failure result.

    Attributes:
        operation: Name of the failed operation (e.g. "reset", "set baudrate").
        result: Transport result code, if any.
    """

    def __init__(self, operation: str, result: int | None = None) -> None:
        self.operation = operation
        self.result = result
        if result is None:
            super().__init__(f"{operation} failed")
        else:
            super().__init__(f"{operation} failed: result={result}")
