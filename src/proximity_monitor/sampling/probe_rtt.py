"""
ICMP-style RTT sampler backed by the system ping utility.

ping measures true network-layer latency (better for routers that keep
port 80 closed) but is an external, possibly restricted tool, so every
failure mode is reported as "no data" rather than an error.
"""

import logging
import re
import sys
from typing import List, Optional, Tuple

from ..interfaces.errors import CommandError
from ..interfaces.measurement_result import RTTSummary
from .commands import run_command
from .statistics import summarize_samples

logger = logging.getLogger(__name__)

# "64 bytes from 192.168.1.1: icmp_seq=0 ttl=64 time=3.215 ms" (also "time<1 ms")
_TIME_PATTERN = re.compile(r'time[=<](\d+\.?\d*)\s*ms')

# "round-trip min/avg/max/stddev = 1.1/2.2/3.3/0.4 ms"
# "rtt min/avg/max/mdev = 1.1/2.2/3.3/0.4 ms"
_SUMMARY_PATTERN = re.compile(r'(\d+\.?\d*)/(\d+\.?\d*)/(\d+\.?\d*)/(\d+\.?\d*)\s*ms')


def parse_probe_output(text: str) -> Tuple[List[float], Optional[float]]:
    """
    Extract per-reply times and the deviation figure from ping output.

    Args:
        text: Raw stdout of ping

    Returns:
        (times_ms in output order, jitter_ms or None if no summary line)
    """
    times = []
    for line in text.splitlines():
        match = _TIME_PATTERN.search(line)
        if match:
            times.append(float(match.group(1)))

    summary = _SUMMARY_PATTERN.search(text)
    jitter = float(summary.group(4)) if summary else None
    return times, jitter


def default_wait_args() -> List[str]:
    """Per-reply wait flag; macOS takes milliseconds, Linux seconds."""
    if sys.platform == 'darwin':
        return ['-W', '2000']
    return ['-W', '2']


class ProbeRttSampler:
    """RTT via repeated echo requests from the ping utility."""

    def __init__(
        self,
        command: str = 'ping',
        spacing: float = 0.1,
        timeout: float = 15.0,
        runner=run_command
    ):
        """
        Args:
            command: ping executable
            spacing: Seconds between echo requests (-i)
            timeout: Overall bound on the ping process
            runner: Coroutine function (argv, timeout) -> stdout
        """
        self.command = command
        self.spacing = spacing
        self.timeout = timeout
        self._runner = runner

    def build_argv(self, address: str, sample_count: int) -> List[str]:
        return [
            self.command,
            '-c', str(sample_count),
            '-i', f'{self.spacing:g}',
            *default_wait_args(),
            address,
        ]

    async def measure(self, address: str, sample_count: int = 10) -> Optional[RTTSummary]:
        """
        Probe address sample_count times.

        Returns:
            RTTSummary with jitter_ms from ping's statistics line, or None
            if ping is unavailable, timed out, or produced no replies
        """
        try:
            output = await self._runner(self.build_argv(address, sample_count), self.timeout)
        except CommandError as e:
            # ping exits non-zero on packet loss; whatever replies arrived still count
            output = e.stdout
            if not output:
                logger.debug(f"Probe to {address} unavailable: {e}")
                return None

        times, jitter = parse_probe_output(output)
        if not times:
            logger.debug(f"Probe to {address} produced no replies")
            return None
        return summarize_samples(times, jitter_ms=jitter)
