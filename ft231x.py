#!/usr/bin/env python3
"""FT231X USB-serial bridge tool."""

import argparse
import asyncio
import logging
import signal
import sys
from types import FrameType

import serial

from common.config import DEFAULT_BAUDRATE, Parity, PortConfig, StopBits
from common.device import PyUsbConnector, UsbfsPermissionBroker, find_device, log_device_info
from common.errors import BridgeError, TransferCancelled
from common.protocol import FT231X_PID, FTDI_VID, TRACE
from port.lifecycle import PortLifecycle

logger = logging.getLogger(__name__)

DEFAULT_READ_COUNT = 64
MONITOR_CHUNK = 512

_PARITY_CHOICES = list(serial.PARITY_NAMES)
_STOPBITS_CHOICES = ["1", "1.5", "2"]


def _hex_int(value: str) -> int:
    return int(value, 16)


def config_from_args(args: argparse.Namespace) -> PortConfig:
    """Build the port config from parsed arguments."""
    return PortConfig(
        baudrate=args.baudrate,
        bytesize=args.bytesize,
        stopbits=StopBits(float(args.stopbits)),
        parity=Parity(args.parity),
    )


async def run_read(port: PortLifecycle, count: int) -> int:
    result = await port.read(count + 2)
    sys.stdout.buffer.write(result.data)
    sys.stdout.flush()
    logger.debug(f"Read {result.length} bytes")
    return 0


async def run_write(port: PortLifecycle, text: str) -> int:
    data = text.encode()
    written = await port.write(data)
    logger.info(f"Wrote {written}/{len(data)} bytes")
    return 0


async def run_monitor(port: PortLifecycle) -> int:
    """Print incoming data until SIGINT."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()

    def handler(_sig: int, _frame: FrameType | None) -> None:
        loop.call_soon_threadsafe(stop.set)

    signal.signal(signal.SIGINT, handler)
    logger.info("Monitoring (Ctrl-C to stop)")
    total = 0
    while not stop.is_set():
        try:
            result = await port.read(MONITOR_CHUNK, cancel=stop)
        except TransferCancelled:
            break
        sys.stdout.buffer.write(result.data)
        sys.stdout.flush()
        total += result.length
    logger.info(f"Received {total} bytes")
    return 0


async def run(args: argparse.Namespace) -> int:
    config = config_from_args(args)
    device = find_device(args.vid, args.pid, args.serial_number)
    if device is None:
        logger.error(f"No device {args.vid:04x}:{args.pid:04x} found")
        return 2
    log_device_info(device)

    port = PortLifecycle(
        device,
        config,
        permissions=UsbfsPermissionBroker(),
        connector=PyUsbConnector(),
    )
    try:
        async with port:
            match args.mode:
                case "read":
                    return await run_read(port, args.count)
                case "write":
                    return await run_write(port, args.text)
                case _:
                    return await run_monitor(port)
    except BridgeError as e:
        logger.error(f"Bridge error: {e}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Talk to an FT231X USB-serial bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s monitor                     Print incoming data at 9600 8N1
  %(prog)s -b 115200 write "hello"     Send text at 115200 baud
  %(prog)s -p E -s 2 read -n 16        Read 16 bytes at 9600 8E2
""",
    )
    parser.add_argument(
        "-b",
        "--baudrate",
        type=int,
        default=DEFAULT_BAUDRATE,
        help=f"Baud rate (default: {DEFAULT_BAUDRATE})",
    )
    parser.add_argument(
        "--bytesize", type=int, choices=[7, 8], default=8, help="Data bits (default: 8)"
    )
    parser.add_argument(
        "-p",
        "--parity",
        choices=_PARITY_CHOICES,
        default=serial.PARITY_NONE,
        help="Parity (default: N)",
    )
    parser.add_argument(
        "-s", "--stopbits", choices=_STOPBITS_CHOICES, default="1", help="Stop bits (default: 1)"
    )
    parser.add_argument(
        "--vid", type=_hex_int, default=FTDI_VID, help=f"USB vendor id, hex (default: {FTDI_VID:04x})"
    )
    parser.add_argument(
        "--pid",
        type=_hex_int,
        default=FT231X_PID,
        help=f"USB product id, hex (default: {FT231X_PID:04x})",
    )
    parser.add_argument("--serial-number", type=str, help="Match device serial number")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (-vv for transfer dumps)"
    )

    subparsers = parser.add_subparsers(dest="mode")

    read_parser = subparsers.add_parser("read", help="Read one chunk of data")
    read_parser.add_argument(
        "-n",
        "--count",
        type=int,
        default=DEFAULT_READ_COUNT,
        help=f"Maximum payload bytes (default: {DEFAULT_READ_COUNT})",
    )

    write_parser = subparsers.add_parser("write", help="Write text")
    write_parser.add_argument("text", help="Text to send")

    subparsers.add_parser("monitor", help="Print incoming data until Ctrl-C")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.mode is None:
        parser.print_help()
        return 2
    if args.mode == "read" and args.count <= 0:
        parser.error("--count must be positive")

    level = {0: logging.INFO, 1: logging.DEBUG}.get(args.verbose, TRACE)
    logging.basicConfig(level=level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
