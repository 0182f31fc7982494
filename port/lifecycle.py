"""Open/configure/close lifecycle of an FT231X bridge port.

Contains:
- PortLifecycle: Owns the device connection and bulk endpoints of one port

Open sequence:
  request permission -> open connection -> claim interface -> reset ->
  set line control -> set baud rate -> discover bulk endpoints -> Ready
"""

import asyncio
import logging
from types import TracebackType
from typing import Any

from common.baudrate import encode_baudrate
from common.config import PortConfig
from common.errors import (
    ConnectFailed,
    EndpointsMissing,
    IOFailure,
    NotConnected,
    PermissionDenied,
)
from common.linecontrol import encode_line_control
from common.protocol import (
    BULK_TIMEOUT_MS,
    CONTROL_TIMEOUT_MS,
    PORT_INDEX,
    REQTYPE_HOST_TO_DEVICE,
    RESET_ALL,
    DeviceConnector,
    Direction,
    Endpoint,
    EndpointPair,
    PermissionBroker,
    Request,
    TransferType,
    UsbConnection,
)
from port.framing import ReadResult, TransferFramer
from port.state import Closed, Configuring, Connecting, PortState, Ready

logger = logging.getLogger(__name__)


def find_bulk_endpoints(endpoints: list[Endpoint]) -> EndpointPair:
    """Pick the bulk IN and bulk OUT endpoints of an interface.

    The first bulk endpoint of each direction is used; later ones are ignored.

    Raises:
        EndpointsMissing: If either direction has no bulk endpoint.
    """
    found: dict[Direction, Endpoint] = {}
    for endpoint in endpoints:
        if endpoint.transfer_type != TransferType.BULK:
            continue
        if endpoint.direction in found:
            logger.warning(f"Ignoring extra bulk {endpoint.direction.name} endpoint {endpoint}")
            continue
        found[endpoint.direction] = endpoint

    missing = [d.name for d in (Direction.IN, Direction.OUT) if d not in found]
    if missing:
        raise EndpointsMissing(f"No bulk {'/'.join(missing)} endpoint on interface")
    return EndpointPair(in_=found[Direction.IN], out=found[Direction.OUT])


class PortLifecycle:
    """One serial port on an FT231X, driven over USB.

    The config is fixed at construction. open() moves the port from Closed
    to Ready; any failure on the way closes the connection again and
    re-raises. close() is always safe to call.
    """

    def __init__(
        self,
        device: Any,
        config: PortConfig | None = None,
        *,
        permissions: PermissionBroker,
        connector: DeviceConnector,
        interface: int = 0,
        control_timeout_ms: int = CONTROL_TIMEOUT_MS,
        bulk_timeout_ms: int = BULK_TIMEOUT_MS,
    ) -> None:
        self._device = device
        self._config = config if config is not None else PortConfig()
        self._permissions = permissions
        self._connector = connector
        self._interface = interface
        self._control_timeout_ms = control_timeout_ms
        self._bulk_timeout_ms = bulk_timeout_ms
        self._state: PortState = Closed()
        self._framer: TransferFramer | None = None

    @property
    def config(self) -> PortConfig:
        return self._config

    @property
    def state(self) -> PortState:
        return self._state

    @property
    def is_open(self) -> bool:
        return isinstance(self._state, Ready)

    @property
    def effective_baudrate(self) -> int | None:
        """Baud rate the chip runs at, once Ready."""
        if isinstance(self._state, Ready):
            return self._state.effective_baudrate
        return None

    # -------------------------------------------------------------------------
    # Open / close
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        """Open, reset and configure the port.

        Raises:
            PermissionDenied: If the host refuses access.
            ConnectFailed: If no connection could be acquired, or close() was
                called while access was still pending.
            InvalidArgument, UnsupportedOperation: If the config is rejected.
            IOFailure: If a control transfer fails.
            EndpointsMissing: If the interface lacks bulk endpoints.
        """
        if isinstance(self._state, Ready):
            logger.warning("Port already open")
            return
        if not isinstance(self._state, Closed):
            raise ConnectFailed(f"Open already in progress ({type(self._state).__name__})")

        pending = Connecting(self._device)
        self._state = pending
        try:
            granted = await self._permissions.request_access(self._device)
        except BaseException:
            if self._state is pending:
                self._state = Closed()
            raise
        if self._state is not pending:
            raise ConnectFailed("open aborted by close")
        if not granted:
            self._state = Closed()
            raise PermissionDenied(f"Access to {self._device} denied")

        try:
            self._connect()
        except BaseException:
            self.close()
            raise

    def _connect(self) -> None:
        connection = self._connector.open(self._device)
        if connection is None:
            raise ConnectFailed(f"Could not open {self._device}")
        self._state = Configuring(connection)
        logger.debug("Connection acquired")

        if not connection.claim_interface(self._interface, True):
            logger.warning(f"Claim of interface {self._interface} reported failure")

        self._control(connection, Request.RESET, RESET_ALL, PORT_INDEX, "reset")
        effective_baudrate = self.configure()

        endpoints = find_bulk_endpoints(list(connection.endpoints(self._interface)))
        logger.debug(f"Bulk endpoints: in={endpoints.in_}, out={endpoints.out}")

        self._framer = TransferFramer(connection, endpoints, self._bulk_timeout_ms)
        self._state = Ready(connection, endpoints, effective_baudrate)
        logger.info(f"Port open: {self._config} (effective {effective_baudrate} baud)")

    def close(self) -> None:
        """Release the connection, if any. Never raises."""
        connection = self._connection()
        self._state = Closed()
        self._framer = None
        if connection is None:
            return
        try:
            connection.close()
        except Exception as e:
            logger.warning(f"Error while closing connection: {e}")
        else:
            logger.info("Port closed")

    async def __aenter__(self) -> "PortLifecycle":
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def configure(self) -> int:
        """Send line control and baud rate for the port config.

        Both values are validated before anything is sent. Returns the
        effective baud rate.

        Raises:
            NotConnected: If no connection exists.
            InvalidArgument, UnsupportedOperation: If the config is rejected.
            IOFailure: If a control transfer fails.
        """
        connection = self._connection()
        if connection is None:
            raise NotConnected("Cannot configure: not connected")

        config = self._config
        line_control = encode_line_control(config.bytesize, config.parity, config.stopbits)
        baud = encode_baudrate(config.baudrate)

        self._control(connection, Request.SET_DATA, line_control, PORT_INDEX, "set parameters")
        self._control(connection, Request.SET_BAUD_RATE, baud.value, baud.index, "set baudrate")
        logger.debug(
            f"Configured line=0x{line_control:04x} baud value=0x{baud.value:04x} "
            f"index={baud.index} (divisor={baud.divisor}, subdivisor={baud.subdivisor})"
        )
        return baud.effective_baudrate

    def _control(
        self, connection: UsbConnection, request: Request, value: int, index: int, operation: str
    ) -> None:
        result = connection.control_transfer(
            REQTYPE_HOST_TO_DEVICE, request, value, index, self._control_timeout_ms
        )
        if result != 0:
            raise IOFailure(operation, result)

    def _connection(self) -> UsbConnection | None:
        match self._state:
            case Configuring(connection=connection) | Ready(connection=connection):
                return connection
            case _:
                return None

    # -------------------------------------------------------------------------
    # Data transfer
    # -------------------------------------------------------------------------

    def _ready_framer(self) -> TransferFramer:
        if self._framer is None or not isinstance(self._state, Ready):
            raise NotConnected("Port is not open")
        return self._framer

    async def write(self, data: bytes, cancel: asyncio.Event | None = None) -> int:
        """Write data to the port. Returns bytes accepted by the transfer."""
        return await self._ready_framer().write(data, cancel)

    async def read(
        self,
        count: int,
        cancel: asyncio.Event | None = None,
        max_attempts: int | None = None,
    ) -> ReadResult:
        """Read from the port; see TransferFramer.read."""
        return await self._ready_framer().read(count, cancel, max_attempts)
