"""pytest configuration and fixtures for the FT231X bridge tests.

Provides:
- MockConnection: Scripted UsbConnection recording control transfers
- MockConnector: DeviceConnector returning a MockConnection (or None)
- MockPermissions: PermissionBroker with a fixed answer
- Markers for unit tests
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field

import pytest

from common.protocol import Endpoint, EndpointPair, TransferType

BULK_IN = Endpoint(address=0x81, transfer_type=TransferType.BULK)
BULK_OUT = Endpoint(address=0x02, transfer_type=TransferType.BULK)
DEFAULT_ENDPOINTS = [BULK_IN, BULK_OUT]

STATUS = b"\x01\x60"


@dataclass
class ControlCall:
    request_type: int
    request: int
    value: int
    index: int


class MockConnection:
    """Mock UsbConnection.

    Bulk reads pop scripted chunks; once the script is exhausted every read
    returns just the status prefix (the chip's "no data" answer).
    Control transfers return the code scripted for their request, else 0.
    """

    def __init__(
        self,
        reads: Iterable[bytes] = (),
        endpoints: list[Endpoint] | None = None,
        control_results: dict[int, int] | None = None,
        read_delay_s: float = 0.0,
    ) -> None:
        self.reads = list(reads)
        self.read_delay_s = read_delay_s
        self._endpoints = DEFAULT_ENDPOINTS if endpoints is None else endpoints
        self.control_results = control_results or {}
        self.control_calls: list[ControlCall] = []
        self.claimed: list[tuple[int, bool]] = []
        self.read_calls: list[tuple[Endpoint, int]] = []
        self.writes: list[bytes] = []
        self.close_count = 0
        self.fail_close = False

    def claim_interface(self, interface: int, force: bool) -> bool:
        self.claimed.append((interface, force))
        return True

    def endpoints(self, interface: int) -> list[Endpoint]:
        return list(self._endpoints)

    def control_transfer(
        self, request_type: int, request: int, value: int, index: int, timeout_ms: int
    ) -> int:
        self.control_calls.append(ControlCall(request_type, request, value, index))
        return self.control_results.get(request, 0)

    async def bulk_read(self, endpoint: Endpoint, size: int, timeout_ms: int) -> bytes:
        self.read_calls.append((endpoint, size))
        if self.read_delay_s:
            await asyncio.sleep(self.read_delay_s)
        if self.reads:
            return self.reads.pop(0)[:size]
        return STATUS

    async def bulk_write(self, endpoint: Endpoint, data: bytes, timeout_ms: int) -> int:
        self.writes.append(data)
        return len(data)

    def close(self) -> None:
        self.close_count += 1
        if self.fail_close:
            raise OSError("device gone")


@dataclass
class MockConnector:
    """Mock DeviceConnector."""

    connection: MockConnection | None = field(default_factory=MockConnection)
    opened: list[object] = field(default_factory=list)

    def open(self, device: object) -> MockConnection | None:
        self.opened.append(device)
        return self.connection


@dataclass
class MockPermissions:
    """Mock PermissionBroker."""

    granted: bool = True
    requests: int = 0

    async def request_access(self, device: object) -> bool:
        self.requests += 1
        await asyncio.sleep(0)
        return self.granted


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")


@pytest.fixture
def connection() -> MockConnection:
    return MockConnection()


@pytest.fixture
def endpoints() -> EndpointPair:
    return EndpointPair(in_=BULK_IN, out=BULK_OUT)
