"""Neighbor discovery from the OS address-resolution table."""

import logging
import re
from typing import List, Sequence

from ..interfaces.errors import CommandError
from ..interfaces.measurement_result import NeighborEntry
from .commands import run_command

logger = logging.getLogger(__name__)

BROADCAST_HARDWARE_ID = 'ff:ff:ff:ff:ff:ff'

# "? (192.168.1.1) at a4:2b:b0:11:22:33 on en0 ifscope [ethernet]"
_ENTRY_PATTERN = re.compile(r'\((\d+\.\d+\.\d+\.\d+)\)\s+at\s+([0-9a-f:]+)', re.IGNORECASE)


def parse_neighbor_table(text: str) -> List[NeighborEntry]:
    """
    Parse `arp -a` output into neighbor entries.

    Incomplete entries and the broadcast hardware id are skipped.
    Hardware ids are lower-cased.
    """
    entries = []
    for line in text.splitlines():
        match = _ENTRY_PATTERN.search(line)
        if not match:
            continue
        hardware_id = match.group(2).lower()
        if hardware_id == BROADCAST_HARDWARE_ID:
            continue
        entries.append(NeighborEntry(address=match.group(1), hardware_id=hardware_id))
    return entries


class NeighborResolver:
    """Reads the neighbor table fresh on every call; nothing is cached."""

    def __init__(
        self,
        command: Sequence[str] = ('arp', '-a'),
        timeout: float = 5.0,
        runner=run_command
    ):
        self.command = list(command)
        self.timeout = timeout
        self._runner = runner

    async def resolve(self) -> List[NeighborEntry]:
        """Return reachable peers; any lookup failure yields []."""
        try:
            output = await self._runner(self.command, self.timeout)
        except CommandError as e:
            logger.debug(f"Neighbor table unavailable: {e}")
            return []
        return parse_neighbor_table(output)
