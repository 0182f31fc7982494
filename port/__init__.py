"""Port package for the FT231X bridge.

Contains the port lifecycle and data path:
- state: Closed, Connecting, Configuring, Ready
- framing: ReadResult, TransferFramer
- lifecycle: PortLifecycle, find_bulk_endpoints
"""

from port.framing import ReadResult, TransferFramer
from port.lifecycle import PortLifecycle, find_bulk_endpoints
from port.state import Closed, Configuring, Connecting, PortState, Ready

__all__ = [
    "ReadResult",
    "TransferFramer",
    "PortLifecycle",
    "find_bulk_endpoints",
    "PortState",
    "Closed",
    "Connecting",
    "Configuring",
    "Ready",
]
