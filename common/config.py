"""Serial line configuration for the FT231X bridge.

Contains:
- Parity: Parity modes (values are the pyserial constants)
- StopBits: Stop bit widths (values are the pyserial constants)
- PortConfig: Immutable port settings supplied when a port is created
"""

import os
from dataclasses import dataclass
from enum import Enum

import serial

DEFAULT_BAUDRATE = 9600
DEFAULT_BYTESIZE = serial.EIGHTBITS


class Parity(Enum):
    """Parity modes."""

    NONE = serial.PARITY_NONE
    ODD = serial.PARITY_ODD
    EVEN = serial.PARITY_EVEN
    MARK = serial.PARITY_MARK
    SPACE = serial.PARITY_SPACE


class StopBits(Enum):
    """Stop bit widths."""

    ONE = serial.STOPBITS_ONE
    ONE_POINT_FIVE = serial.STOPBITS_ONE_POINT_FIVE
    TWO = serial.STOPBITS_TWO


def _stopbits_label(stopbits: StopBits) -> str:
    return "1.5" if stopbits is StopBits.ONE_POINT_FIVE else str(int(stopbits.value))


@dataclass(frozen=True)
class PortConfig:
    """Port settings, fixed for the life of a port.

    Values are validated when the port is configured, not here, so an
    unsupported combination surfaces as an error from open().
    """

    baudrate: int = DEFAULT_BAUDRATE
    bytesize: int = DEFAULT_BYTESIZE
    stopbits: StopBits = StopBits.ONE
    parity: Parity = Parity.NONE

    def __str__(self) -> str:
        parity = self.parity.value if isinstance(self.parity, Parity) else self.parity
        stopbits = (
            _stopbits_label(self.stopbits) if isinstance(self.stopbits, StopBits) else self.stopbits
        )
        return f"{self.baudrate} {self.bytesize}{parity}{stopbits}"

    @classmethod
    def from_env(cls) -> "PortConfig":
        """Build a config from FT231X_* environment variables."""
        return cls(
            baudrate=int(os.environ.get("FT231X_BAUDRATE", str(DEFAULT_BAUDRATE))),
            bytesize=int(os.environ.get("FT231X_BYTESIZE", str(DEFAULT_BYTESIZE))),
            stopbits=StopBits(float(os.environ.get("FT231X_STOPBITS", "1"))),
            parity=Parity(os.environ.get("FT231X_PARITY", serial.PARITY_NONE).upper()),
        )
