"""
Scan Aggregator - one sampling cycle.

Runs the external signal scanner, the neighbor resolver and (when the scan
reports a gateway) both RTT samplers, and merges everything into a single
ScanSnapshot.

Failure isolation:
    The scanner is the only fatal source; without a base scan the snapshot
    means nothing. Neighbor and RTT sources degrade to [] / None.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Sequence

from ..interfaces.errors import CommandError, ScannerFailure
from ..interfaces.measurement_result import GatewayRtt, ScanSnapshot
from ..sampling.address import is_ipv4_literal
from ..sampling.commands import run_command
from ..sampling.neighbors import NeighborResolver
from ..sampling.probe_rtt import ProbeRttSampler
from ..sampling.tcp_rtt import TcpRttSampler

logger = logging.getLogger(__name__)


class ScanAggregator:
    """
    Produces one ScanSnapshot per run_cycle() call.

    Holds no state between cycles; the same instance is shared by the
    scheduler and the on-demand query interface.
    """

    def __init__(
        self,
        scanner_command: Sequence[str],
        scanner_timeout: float = 10.0,
        gateway_field: str = 'gatewayIP',
        tcp_sampler: Optional[TcpRttSampler] = None,
        probe_sampler: Optional[ProbeRttSampler] = None,
        neighbor_resolver: Optional[NeighborResolver] = None,
        tcp_port: int = 80,
        tcp_samples: int = 5,
        probe_samples: int = 10,
        runner=run_command
    ):
        """
        Args:
            scanner_command: argv of the signal scanner (no extra arguments added)
            scanner_timeout: Seconds before the scanner is killed
            gateway_field: Key in the scan report holding the gateway address
            tcp_sampler: Transport RTT sampler
            probe_sampler: ping RTT sampler
            neighbor_resolver: ARP table resolver
            tcp_port: Port for transport RTT against the gateway
            tcp_samples: Connect attempts per cycle
            probe_samples: Echo requests per cycle
            runner: Coroutine function (argv, timeout) -> stdout
        """
        self.scanner_command = list(scanner_command)
        self.scanner_timeout = scanner_timeout
        self.gateway_field = gateway_field
        self.tcp_sampler = tcp_sampler or TcpRttSampler()
        self.probe_sampler = probe_sampler or ProbeRttSampler()
        self.neighbor_resolver = neighbor_resolver or NeighborResolver()
        self.tcp_port = tcp_port
        self.tcp_samples = tcp_samples
        self.probe_samples = probe_samples
        self._runner = runner

    async def run_scanner(self) -> Dict[str, Any]:
        """
        Invoke the external scanner and parse its JSON report.

        Raises:
            ScannerFailure: Spawn error, non-zero exit, timeout, or output
                that is not a JSON object
        """
        try:
            output = await self._runner(self.scanner_command, self.scanner_timeout)
        except CommandError as e:
            raise ScannerFailure(f"Scanner failed: {e}") from e

        try:
            report = json.loads(output)
        except ValueError as e:
            raise ScannerFailure("Invalid scanner output") from e
        if not isinstance(report, dict):
            raise ScannerFailure("Invalid scanner output")
        return report

    async def measure_rtt(self, host: str) -> GatewayRtt:
        """Run both samplers against host concurrently."""
        tcp, probe = await asyncio.gather(
            self.tcp_sampler.measure(host, self.tcp_port, self.tcp_samples),
            self.probe_sampler.measure(host, self.probe_samples),
        )
        return GatewayRtt(host=host, tcp=tcp, probe=probe)

    async def run_cycle(self) -> ScanSnapshot:
        """
        Run one full aggregation cycle.

        Returns:
            ScanSnapshot built after every launched source has finished

        Raises:
            ScannerFailure: Only when the base scan is unusable
        """
        start = time.monotonic()
        neighbors_task = asyncio.ensure_future(self.neighbor_resolver.resolve())

        try:
            scan = await self.run_scanner()

            gateway_rtt = None
            gateway = scan.get(self.gateway_field)
            if gateway:
                if is_ipv4_literal(gateway):
                    gateway_rtt = await self.measure_rtt(gateway)
                else:
                    logger.warning(f"Scanner reported unusable gateway {gateway!r}; skipping RTT")

            neighbors = await neighbors_task
        except BaseException:
            # Scanner failure or cancellation: never leave the lookup running
            if not neighbors_task.done():
                neighbors_task.cancel()
                await asyncio.gather(neighbors_task, return_exceptions=True)
            raise

        snapshot = ScanSnapshot(scan=scan, neighbors=neighbors, gateway_rtt=gateway_rtt)
        logger.debug(
            f"Cycle complete in {time.monotonic() - start:.2f}s: "
            f"{len(neighbors)} neighbors, gateway={gateway or 'none'}"
        )
        return snapshot
