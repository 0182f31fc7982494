"""Line control (SET_DATA) word encoding for the FT231X.

Word layout:
  bits 0..7   data bits (7 or 8)
  bits 8..10  parity (0 none, 1 odd, 2 even, 3 mark, 4 space)
  bits 11..13 stop bits (0 one, 2 two)
"""

from common.config import Parity, StopBits
from common.errors import InvalidArgument, UnsupportedOperation

PARITY_BITS: dict[Parity, int] = {
    Parity.NONE: 0x000,
    Parity.ODD: 0x100,
    Parity.EVEN: 0x200,
    Parity.MARK: 0x300,
    Parity.SPACE: 0x400,
}

STOPBITS_BITS: dict[StopBits, int] = {
    StopBits.ONE: 0x0000,
    StopBits.TWO: 0x1000,
}

SUPPORTED_BYTESIZES = (7, 8)
UNSUPPORTED_BYTESIZES = (5, 6)


def _coerce_parity(parity: Parity | str) -> Parity:
    try:
        return Parity(parity)
    except ValueError:
        raise InvalidArgument(f"Unknown parity value: {parity!r}") from None


def _coerce_stopbits(stopbits: StopBits | float) -> StopBits:
    try:
        return StopBits(stopbits)
    except ValueError:
        raise InvalidArgument(f"Unknown stop bits value: {stopbits!r}") from None


def encode_line_control(
    data_bits: int, parity: Parity | str, stop_bits: StopBits | float
) -> int:
    """Build the SET_DATA wValue for the given framing.

    Raises:
        InvalidArgument: For unrecognized data bits, parity or stop bits.
        UnsupportedOperation: For 5/6 data bits or 1.5 stop bits.
    """
    if isinstance(data_bits, bool) or not isinstance(data_bits, int):
        raise InvalidArgument(f"Invalid data bits: {data_bits!r}")
    if data_bits in UNSUPPORTED_BYTESIZES:
        raise UnsupportedOperation(f"Unsupported data bits: {data_bits}")
    if data_bits not in SUPPORTED_BYTESIZES:
        raise InvalidArgument(f"Invalid data bits: {data_bits}")

    config = data_bits
    config |= PARITY_BITS[_coerce_parity(parity)]

    match _coerce_stopbits(stop_bits):
        case StopBits.ONE_POINT_FIVE:
            raise UnsupportedOperation("Unsupported stop bits: 1.5")
        case stopbits:
            config |= STOPBITS_BITS[stopbits]

    return config
