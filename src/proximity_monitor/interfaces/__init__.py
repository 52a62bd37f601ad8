"""Data contracts and error types shared by samplers, engine and web layer."""

from .errors import (
    ProximityError,
    ScannerFailure,
    CommandError,
    InvalidAddressError,
)
from .measurement_result import (
    RTTSummary,
    NeighborEntry,
    GatewayRtt,
    ScanSnapshot,
    error_payload,
)

__all__ = [
    'ProximityError',
    'ScannerFailure',
    'CommandError',
    'InvalidAddressError',
    'RTTSummary',
    'NeighborEntry',
    'GatewayRtt',
    'ScanSnapshot',
    'error_payload',
]
