"""Core sampling engine - aggregation cycle and broadcast scheduling.

Contains:
- ScanAggregator: one merged snapshot per cycle
- BroadcastScheduler: shared timer driven by subscriber count
- ProximityService: wiring, on-demand queries, lifecycle
"""

from .broadcast_scheduler import BroadcastScheduler, SchedulerState
from .scan_aggregator import ScanAggregator
from .service import ProximityService
from .subscribers import Subscriber, QueueSubscriber

__all__ = [
    'BroadcastScheduler',
    'SchedulerState',
    'ScanAggregator',
    'ProximityService',
    'Subscriber',
    'QueueSubscriber',
]
