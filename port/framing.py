"""Bulk transfer framing for the FT231X bridge.

Contains:
- ReadResult: Payload of one read, status prefix removed
- TransferFramer: Reads and writes over the bulk endpoints

Every bulk-in packet from the chip starts with STATUS_PREFIX_LENGTH
modem/line status bytes. A transfer carrying only those bytes means "no data
yet", so reads keep polling until a transfer carries payload. Transfers longer
than one packet carry a status pair at each packet boundary.
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from common.errors import InvalidArgument, TransferCancelled
from common.protocol import (
    BULK_TIMEOUT_MS,
    STATUS_PREFIX_LENGTH,
    TRACE,
    EndpointPair,
    UsbConnection,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReadResult:
    """Data returned by a read, without the status prefix."""

    data: bytes
    length: int


EMPTY_READ = ReadResult(data=b"", length=0)


def strip_status(chunk: bytes, packet_size: int) -> tuple[bytes, bytes]:
    """Split a bulk-in transfer into (payload, last status).

    The chip prefixes every packet of packet_size bytes with its own status
    pair, so a transfer spanning several packets carries several of them.
    """
    payload = bytearray()
    status = b""
    for offset in range(0, len(chunk), packet_size):
        packet = chunk[offset : offset + packet_size]
        status = bytes(packet[:STATUS_PREFIX_LENGTH])
        payload += packet[STATUS_PREFIX_LENGTH:]
    return bytes(payload), status


async def _cancellable(
    transfer: Awaitable[T], cancel: asyncio.Event | None, operation: str
) -> T:
    """Await a transfer, aborting it if cancel is set first.

    Raises:
        TransferCancelled: If cancel was set before the transfer completed.
    """
    if cancel is None:
        return await transfer

    transfer_task = asyncio.ensure_future(transfer)
    if cancel.is_set():
        transfer_task.cancel()
        raise TransferCancelled(f"{operation} cancelled")

    cancel_task = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({transfer_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()
        if not transfer_task.done():
            transfer_task.cancel()

    if transfer_task.done() and not transfer_task.cancelled():
        return transfer_task.result()
    raise TransferCancelled(f"{operation} cancelled")


class TransferFramer:
    """Frames reads and writes on a pair of bulk endpoints.

    Reads are serialized with each other, and writes with each other; a read
    and a write may be in flight at the same time.
    """

    def __init__(
        self,
        connection: UsbConnection,
        endpoints: EndpointPair,
        timeout_ms: int = BULK_TIMEOUT_MS,
    ) -> None:
        self._connection = connection
        self._endpoints = endpoints
        self._timeout_ms = timeout_ms
        self._read_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    async def write(self, data: bytes, cancel: asyncio.Event | None = None) -> int:
        """Send data as one bulk-out transfer. Returns bytes written.

        No retry is attempted on a short write.
        """
        payload = bytes(data)
        async with self._write_lock:
            logger.log(TRACE, f"TX {payload.hex()}")
            written = await _cancellable(
                self._connection.bulk_write(self._endpoints.out, payload, self._timeout_ms),
                cancel,
                "write",
            )
        if written != len(payload):
            logger.debug(f"Short write: {written}/{len(payload)} bytes")
        return written

    async def read(
        self,
        count: int,
        cancel: asyncio.Event | None = None,
        max_attempts: int | None = None,
    ) -> ReadResult:
        """Read one bulk-in transfer of up to count bytes, status pairs removed.

        Polls the IN endpoint until a transfer returns more than the status
        prefix. Each poll is bounded by the transfer timeout; the loop itself
        is bounded only by max_attempts (None means unbounded) and by cancel.

        Raises:
            InvalidArgument: If count leaves no room for payload.
            TransferCancelled: If cancel is set while waiting.
        """
        if count <= STATUS_PREFIX_LENGTH:
            raise InvalidArgument(
                f"Read count must exceed the {STATUS_PREFIX_LENGTH}-byte status prefix: {count}"
            )
        if max_attempts is not None and max_attempts <= 0:
            raise InvalidArgument(f"max_attempts must be positive: {max_attempts}")

        async with self._read_lock:
            attempts = 0
            while True:
                chunk = await _cancellable(
                    self._connection.bulk_read(self._endpoints.in_, count, self._timeout_ms),
                    cancel,
                    "read",
                )
                attempts += 1
                payload, status = strip_status(chunk, self._endpoints.in_.max_packet_size)
                if payload:
                    break
                if max_attempts is not None and attempts >= max_attempts:
                    logger.debug(f"No data after {attempts} polls")
                    return EMPTY_READ

        logger.log(TRACE, f"RX {payload.hex()} (status={status.hex()}, polls={attempts})")
        return ReadResult(data=payload, length=len(payload))
