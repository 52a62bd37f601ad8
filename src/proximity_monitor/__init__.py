"""
proximity-monitor: Wi-Fi RSSI + RTT proximity telemetry

This package estimates network proximity between the host and nearby
devices. It fuses a Wi-Fi signal scan with the OS neighbor table and
round-trip-time measurements to the gateway, and streams one snapshot per
interval to any number of live subscribers.

Architecture:
    scanner + arp + TCP/ping RTT → ScanAggregator → BroadcastScheduler → subscribers

Exactly one sampling cycle runs per interval no matter how many
subscribers are attached; the timer only runs while someone is listening.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .interfaces.measurement_result import (
    RTTSummary,
    NeighborEntry,
    GatewayRtt,
    ScanSnapshot,
)
from .interfaces.errors import (
    ProximityError,
    ScannerFailure,
    InvalidAddressError,
)

__all__ = [
    "RTTSummary",
    "NeighborEntry",
    "GatewayRtt",
    "ScanSnapshot",
    "ProximityError",
    "ScannerFailure",
    "InvalidAddressError",
    "__version__",
]
