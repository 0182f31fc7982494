"""Unit tests for baud rate divisor encoding."""

import pytest

from common.baudrate import (
    BAUDRATE_TOLERANCE,
    MAX_DIVISOR,
    BaudEncoding,
    encode_baudrate,
)
from common.errors import InvalidArgument, UnsupportedOperation, UnsupportedRate


@pytest.mark.unit
class TestEncodeBaudrate:
    """Tests for encode_baudrate."""

    def test_9600_fixture(self) -> None:
        encoding = encode_baudrate(9600)
        assert encoding == BaudEncoding(divisor=312, subdivisor=4, effective_baudrate=9600)
        assert encoding.value == 0x4138
        assert encoding.index == 0

    def test_115200(self) -> None:
        encoding = encode_baudrate(115200)
        assert encoding == BaudEncoding(divisor=26, subdivisor=0, effective_baudrate=115385)
        assert encoding.value == 26
        assert encoding.index == 0

    def test_3mbaud_fixed_divisor(self) -> None:
        encoding = encode_baudrate(3_000_000)
        assert encoding == BaudEncoding(divisor=0, subdivisor=0, effective_baudrate=3_000_000)
        assert (encoding.value, encoding.index) == (0, 0)

    def test_2mbaud_fixed_divisor(self) -> None:
        encoding = encode_baudrate(2_000_000)
        assert encoding == BaudEncoding(divisor=1, subdivisor=0, effective_baudrate=2_000_000)
        assert (encoding.value, encoding.index) == (1, 0)

    def test_high_subdivisor_sets_index_bit(self) -> None:
        # 1.7 MBd -> eighths=14 -> divisor 1, subdivisor 6
        encoding = encode_baudrate(1_700_000)
        assert (encoding.divisor, encoding.subdivisor) == (1, 6)
        assert encoding.value == 0x8001
        assert encoding.index == 1
        assert encoding.effective_baudrate == 1_714_286

    def test_lowest_rate(self) -> None:
        encoding = encode_baudrate(184)
        assert encoding.divisor == 16304
        assert encoding.subdivisor == 3
        assert encoding.effective_baudrate == 184
        assert encoding.index == 1

    def test_too_low(self) -> None:
        with pytest.raises(UnsupportedRate, match="too low"):
            encode_baudrate(183)

    def test_too_high(self) -> None:
        with pytest.raises(UnsupportedRate, match="too high"):
            encode_baudrate(3_500_001)

    @pytest.mark.parametrize("rate", [2_500_000, 3_500_000, 1_750_000, 2_400_000])
    def test_fixed_band_deviation_rejected(self, rate: int) -> None:
        with pytest.raises(UnsupportedRate, match="deviation"):
            encode_baudrate(rate)

    def test_unsupported_rate_is_unsupported_operation(self) -> None:
        with pytest.raises(UnsupportedOperation):
            encode_baudrate(10_000_000)

    @pytest.mark.parametrize("rate", [0, -9600])
    def test_non_positive_rejected(self, rate: int) -> None:
        with pytest.raises(InvalidArgument):
            encode_baudrate(rate)

    def test_non_integer_rejected(self) -> None:
        with pytest.raises(InvalidArgument):
            encode_baudrate(9600.0)  # type: ignore[arg-type]

    def test_deviation_within_tolerance_or_rejected(self) -> None:
        """Every rate in range is either within tolerance or rejected."""
        rates = list(range(183, 20_000, 97)) + list(range(20_000, 3_500_001, 7919))
        rates += [300, 1200, 2400, 4800, 19200, 38400, 57600, 230400, 460800, 921600]
        for rate in rates:
            try:
                encoding = encode_baudrate(rate)
            except UnsupportedOperation:
                continue
            assert encoding.error(rate) < BAUDRATE_TOLERANCE, rate
            assert 0 <= encoding.divisor <= MAX_DIVISOR
            assert 0 <= encoding.value <= 0xFFFF
            assert encoding.index in (0, 1)

    def test_above_max_always_rejected(self) -> None:
        for rate in (3_500_001, 4_000_000, 12_000_000):
            with pytest.raises(UnsupportedRate):
                encode_baudrate(rate)


@pytest.mark.unit
class TestBaudEncodingFields:
    """Tests for the subdivisor packing table."""

    @pytest.mark.parametrize(
        "subdivisor, high_bits, index",
        [
            (0, 0b00, 0),
            (4, 0b01, 0),
            (2, 0b10, 0),
            (1, 0b11, 0),
            (3, 0b00, 1),
            (5, 0b01, 1),
            (6, 0b10, 1),
            (7, 0b11, 1),
        ],
    )
    def test_packing(self, subdivisor: int, high_bits: int, index: int) -> None:
        encoding = BaudEncoding(divisor=100, subdivisor=subdivisor, effective_baudrate=0)
        assert encoding.value == 100 | (high_bits << 14)
        assert encoding.index == index
