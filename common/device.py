"""USB device access for the FT231X bridge, backed by pyusb.

Contains:
- find_device: Locate an FT231X on the bus
- log_device_info: Log information about a USB device
- UsbfsPermissionBroker: Grant access when the usbfs node is usable
- PyUsbConnector / PyUsbConnection: Connection collaborators over pyusb
"""

import asyncio
import logging
import os
from typing import Any

import usb.core
import usb.util

from common.errors import IOFailure
from common.protocol import FT231X_PID, FTDI_VID, TRACE, Endpoint, TransferType

logger = logging.getLogger(__name__)


def find_device(
    vid: int = FTDI_VID, pid: int = FT231X_PID, serial_number: str | None = None
) -> usb.core.Device | None:
    """Return the first matching USB device, or None."""

    def _match(dev: usb.core.Device) -> bool:
        if serial_number is None:
            return True
        try:
            return usb.util.get_string(dev, dev.iSerialNumber) == serial_number
        except (usb.core.USBError, ValueError):
            return False

    return usb.core.find(idVendor=vid, idProduct=pid, custom_match=_match)


def log_device_info(device: usb.core.Device) -> None:
    """Log information about a USB device."""
    logger.info(f"Device: bus {device.bus:03d} address {device.address:03d}")
    logger.info(f"VID:PID: {device.idVendor:04x}:{device.idProduct:04x}")
    for label, index in (
        ("Manufacturer", device.iManufacturer),
        ("Product", device.iProduct),
        ("Serial Number", device.iSerialNumber),
    ):
        if not index:
            continue
        try:
            logger.info(f"{label}: {usb.util.get_string(device, index)}")
        except (usb.core.USBError, ValueError) as e:
            logger.debug(f"Cannot read {label.lower()} string: {e}")


def usbfs_path(device: Any) -> str:
    """Path of the device's usbfs node on Linux."""
    return f"/dev/bus/usb/{device.bus:03d}/{device.address:03d}"


class UsbfsPermissionBroker:
    """Grants access when this process can read and write the usbfs node.

    Backends without a usbfs node (macOS, Windows) are always granted; the
    open itself will fail there if access is really missing.
    """

    async def request_access(self, device: Any) -> bool:
        path = usbfs_path(device)
        if not os.path.exists(path):
            logger.debug(f"No usbfs node at {path}, assuming access")
            return True
        if os.access(path, os.R_OK | os.W_OK):
            return True
        logger.warning(f"Cannot access {path}: permission denied (add a udev rule or run with sudo)")
        return False


class PyUsbConnection:
    """Open connection to a pyusb device.

    Control transfers return 0 on success and a negative errno on failure.
    Bulk transfers run in a worker thread so they do not block the event loop.
    """

    def __init__(self, device: usb.core.Device) -> None:
        self._device = device
        self._claimed: set[int] = set()
        self._detached: set[int] = set()

    def claim_interface(self, interface: int, force: bool) -> bool:
        if force:
            try:
                if self._device.is_kernel_driver_active(interface):
                    self._device.detach_kernel_driver(interface)
                    self._detached.add(interface)
                    logger.debug(f"Detached kernel driver from interface {interface}")
            except (NotImplementedError, usb.core.USBError):
                pass
        try:
            usb.util.claim_interface(self._device, interface)
        except usb.core.USBError as e:
            logger.warning(f"Cannot claim interface {interface}: {e}")
            return False
        self._claimed.add(interface)
        return True

    def endpoints(self, interface: int) -> list[Endpoint]:
        config = self._device.get_active_configuration()
        intf = config[(interface, 0)]
        return [
            Endpoint(
                address=ep.bEndpointAddress,
                transfer_type=TransferType(usb.util.endpoint_type(ep.bmAttributes)),
                max_packet_size=ep.wMaxPacketSize,
            )
            for ep in intf
        ]

    def control_transfer(
        self, request_type: int, request: int, value: int, index: int, timeout_ms: int
    ) -> int:
        try:
            return self._device.ctrl_transfer(request_type, request, value, index, None, timeout_ms)
        except usb.core.USBError as e:
            logger.debug(f"Control request {request} failed: {e}")
            return -(e.errno or 1)

    def _read(self, endpoint: Endpoint, size: int, timeout_ms: int) -> bytes:
        try:
            return bytes(self._device.read(endpoint.address, size, timeout_ms))
        except usb.core.USBTimeoutError:
            return b""
        except usb.core.USBError as e:
            raise IOFailure("bulk read") from e

    def _write(self, endpoint: Endpoint, data: bytes, timeout_ms: int) -> int:
        try:
            return self._device.write(endpoint.address, data, timeout_ms)
        except usb.core.USBError as e:
            raise IOFailure("bulk write") from e

    async def bulk_read(self, endpoint: Endpoint, size: int, timeout_ms: int) -> bytes:
        data = await asyncio.to_thread(self._read, endpoint, size, timeout_ms)
        logger.log(TRACE, f"{endpoint} <- {data.hex()}")
        return data

    async def bulk_write(self, endpoint: Endpoint, data: bytes, timeout_ms: int) -> int:
        logger.log(TRACE, f"{endpoint} -> {data.hex()}")
        return await asyncio.to_thread(self._write, endpoint, data, timeout_ms)

    def close(self) -> None:
        for interface in sorted(self._claimed):
            try:
                usb.util.release_interface(self._device, interface)
            except usb.core.USBError as e:
                logger.warning(f"Device may be gone: {e}")
        for interface in sorted(self._detached):
            try:
                self._device.attach_kernel_driver(interface)
            except (NotImplementedError, usb.core.USBError):
                pass
        self._claimed.clear()
        self._detached.clear()
        usb.util.dispose_resources(self._device)


class PyUsbConnector:
    """Opens pyusb devices."""

    def open(self, device: usb.core.Device) -> PyUsbConnection | None:
        try:
            device.set_configuration()
        except usb.core.USBError as e:
            # already configured or busy; get_active_configuration decides
            logger.debug(f"set_configuration: {e}")
        try:
            device.get_active_configuration()
        except usb.core.USBError as e:
            logger.error(f"Cannot open device: {e}")
            return None
        return PyUsbConnection(device)
