"""Baud rate divisor encoding for the FT231X.

The chip derives the baud rate from a 3 MHz reference (48 MHz / 16) divided
by a 14-bit integer divisor plus a sub-integer fraction in eighths. The
fraction is spread over bits 14..15 of wValue and bit 0 of wIndex:

  subdivisor  fraction  wValue[15:14]  wIndex[0]
  0           0         00             0
  4           0.5       01             0
  2           0.25      10             0
  1           0.125     11             0
  3           0.375     00             1
  5           0.625     01             1
  6           0.75      10             1
  7           0.875     11             1

Divisors 0 and 1 are special-cased by the chip as 3 MBd and 2 MBd.
"""

from dataclasses import dataclass

from common.errors import InvalidArgument, UnsupportedRate

# 48 MHz / 2, doubled so integer division can round half-up
CLOCK_X2 = 24_000_000 << 1

MAX_BAUDRATE = 3_500_000
MAX_DIVISOR = 0x3FFF

# Maximum relative deviation between requested and effective rate
BAUDRATE_TOLERANCE = 0.031

# subdivisor -> (wValue bits 15..14, wIndex bit 0)
_SUBDIVISOR_CODES: dict[int, tuple[int, int]] = {
    0: (0b00, 0),
    4: (0b01, 0),
    2: (0b10, 0),
    1: (0b11, 0),
    3: (0b00, 1),
    5: (0b01, 1),
    6: (0b10, 1),
    7: (0b11, 1),
}


@dataclass(frozen=True)
class BaudEncoding:
    """Divisor/subdivisor pair and the baud rate it actually produces."""

    divisor: int
    subdivisor: int
    effective_baudrate: int

    @property
    def value(self) -> int:
        """wValue of the SET_BAUD_RATE request."""
        high_bits, _ = _SUBDIVISOR_CODES[self.subdivisor]
        return self.divisor | (high_bits << 14)

    @property
    def index(self) -> int:
        """wIndex of the SET_BAUD_RATE request."""
        _, index_bit = _SUBDIVISOR_CODES[self.subdivisor]
        return index_bit

    def error(self, requested: int) -> float:
        """Relative deviation from the requested rate."""
        return abs(1.0 - (self.effective_baudrate / requested))


def _round_div(dividend: int, divisor: int) -> int:
    # dividend is pre-doubled; add one half and halve
    return ((dividend // divisor) + 1) >> 1


def encode_baudrate(baud_rate: int) -> BaudEncoding:
    """Map a requested baud rate to the chip's divisor encoding.

    Raises:
        InvalidArgument: If baud_rate is not a positive integer.
        UnsupportedRate: If the rate is out of range or no divisor comes
            within BAUDRATE_TOLERANCE of it.
    """
    if isinstance(baud_rate, bool) or not isinstance(baud_rate, int) or baud_rate <= 0:
        raise InvalidArgument(f"Invalid baud rate: {baud_rate}")

    if baud_rate > MAX_BAUDRATE:
        raise UnsupportedRate(f"Baud rate too high: {baud_rate}")

    if baud_rate >= 2_500_000:
        encoding = BaudEncoding(divisor=0, subdivisor=0, effective_baudrate=3_000_000)
    elif baud_rate >= 1_750_000:
        encoding = BaudEncoding(divisor=1, subdivisor=0, effective_baudrate=2_000_000)
    else:
        eighths = _round_div(CLOCK_X2, baud_rate)
        subdivisor = eighths & 0x07
        divisor = eighths >> 3
        if divisor > MAX_DIVISOR:
            # first reached at 183 baud
            raise UnsupportedRate(f"Baud rate too low: {baud_rate}")
        effective = _round_div(CLOCK_X2, (divisor << 3) + subdivisor)
        encoding = BaudEncoding(divisor=divisor, subdivisor=subdivisor, effective_baudrate=effective)

    deviation = encoding.error(baud_rate)
    if deviation >= BAUDRATE_TOLERANCE:
        raise UnsupportedRate(
            f"Baud rate deviation {deviation * 100:.1f}% for {baud_rate} "
            f"is higher than allowed {BAUDRATE_TOLERANCE * 100:.1f}%"
        )
    return encoding
