"""
Measurement Result Data Models

These dataclasses define the contract between proximity-monitor and its
subscribers. A ScanSnapshot is serialized to JSON once per cycle and the
same string is pushed to every live subscriber.

Field naming:
    RTT values are in milliseconds (suffix _ms). The scanner's own report
    is passed through verbatim under whatever keys the scanner uses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import json
import time


@dataclass(frozen=True)
class RTTSummary:
    """
    Summary statistics for one RTT measurement call.

    avg_ms is the trimmed mean (single lowest and highest dropped when at
    least 4 samples exist). min_ms, max_ms and all_ms are untrimmed so a
    consumer can spot a high-jitter link even when the average is stable.
    """
    avg_ms: float
    min_ms: float
    max_ms: float
    samples: int
    all_ms: Tuple[float, ...] = ()
    jitter_ms: Optional[float] = None   # From the probe utility's own statistics

    def to_dict(self) -> dict:
        result = {
            'avg_ms': self.avg_ms,
            'min_ms': self.min_ms,
            'max_ms': self.max_ms,
            'samples': self.samples,
            'all_ms': list(self.all_ms),
        }
        if self.jitter_ms is not None:
            result['jitter_ms'] = self.jitter_ms
        return result


@dataclass(frozen=True)
class NeighborEntry:
    """One reachable peer from the OS neighbor (ARP) table."""
    address: str
    hardware_id: str

    def to_dict(self) -> dict:
        return {'address': self.address, 'hardware_id': self.hardware_id}


@dataclass(frozen=True)
class GatewayRtt:
    """Both RTT measurements taken against the scanner's reported gateway."""
    host: str
    tcp: Optional[RTTSummary] = None
    probe: Optional[RTTSummary] = None

    def to_dict(self) -> dict:
        return {
            'host': self.host,
            'tcp': self.tcp.to_dict() if self.tcp else None,
            'probe': self.probe.to_dict() if self.probe else None,
        }


@dataclass(frozen=True)
class ScanSnapshot:
    """
    One complete aggregation cycle.

    The scanner report is the base of the payload; neighbors, gateway_rtt
    and generated_at are added alongside it. A scanner key that collides
    with one of the added fields is overwritten by the added field.
    """
    scan: Dict[str, Any]
    neighbors: List[NeighborEntry] = field(default_factory=list)
    gateway_rtt: Optional[GatewayRtt] = None
    generated_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        data = dict(self.scan)
        data['neighbors'] = [n.to_dict() for n in self.neighbors]
        data['gateway_rtt'] = self.gateway_rtt.to_dict() if self.gateway_rtt else None
        data['generated_at'] = self.generated_at
        return data

    def to_json(self) -> str:
        """Serialize for delivery to subscribers."""
        return json.dumps(self.to_dict())


def error_payload(message: str) -> str:
    """JSON error object sent to subscribers in place of a snapshot."""
    return json.dumps({'error': message, 'generated_at': time.time()})
