"""Measurement sources: transport RTT, ping RTT, neighbor table.

Contains:
- TcpRttSampler: staggered timed TCP connects
- ProbeRttSampler: ping utility with output parsing
- NeighborResolver: ARP table lookup
"""

from .address import validate_ipv4, is_ipv4_literal
from .neighbors import NeighborResolver, parse_neighbor_table
from .probe_rtt import ProbeRttSampler, parse_probe_output
from .statistics import summarize_samples
from .tcp_rtt import TcpRttSampler

__all__ = [
    'validate_ipv4',
    'is_ipv4_literal',
    'NeighborResolver',
    'parse_neighbor_table',
    'ProbeRttSampler',
    'parse_probe_output',
    'summarize_samples',
    'TcpRttSampler',
]
