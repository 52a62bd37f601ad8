"""
Transport-connect RTT sampler.

Measures the time from issuing a TCP connect to the connection being
established. This is network-layer round-trip time plus stack processing
overhead (~0.1-2 ms), not physical-layer fine timing.

Each sample is its own asyncio task, started with a small stagger so the
attempts do not leave the host as a single burst. The attempts are joined
against an overall deadline, so a call always completes.
"""

import asyncio
import logging
import time
from typing import Optional

from ..interfaces.measurement_result import RTTSummary
from .statistics import summarize_samples

logger = logging.getLogger(__name__)


class TcpRttSampler:
    """
    RTT via timed TCP connection attempts.

    Works without elevated privileges but only against an open (or
    actively refusing) port; a silently filtered port yields no samples.
    """

    def __init__(
        self,
        connect_timeout: float = 2.0,
        stagger: float = 0.05
    ):
        """
        Args:
            connect_timeout: Seconds each attempt may wait for the handshake
            stagger: Seconds between the start of consecutive attempts
        """
        self.connect_timeout = connect_timeout
        self.stagger = stagger

    async def measure(
        self,
        address: str,
        port: int = 80,
        sample_count: int = 5
    ) -> Optional[RTTSummary]:
        """
        Measure connect RTT to address:port.

        Args:
            address: Target IPv4 address
            port: Target TCP port
            sample_count: Number of independent attempts

        Returns:
            RTTSummary, or None if no attempt succeeded
        """
        if sample_count <= 0:
            return None

        tasks = [
            asyncio.ensure_future(self._attempt(address, port, i * self.stagger))
            for i in range(sample_count)
        ]
        deadline = self.connect_timeout + self.stagger * sample_count + 1.0
        done, pending = await asyncio.wait(tasks, timeout=deadline)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug(f"{len(pending)} connect attempts to {address}:{port} missed the deadline")

        samples_ms = [
            task.result() / 1e6 for task in done
            if not task.cancelled() and task.exception() is None and task.result() is not None
        ]
        if not samples_ms:
            logger.debug(f"No TCP RTT samples from {address}:{port}")
            return None
        return summarize_samples(samples_ms)

    async def _attempt(self, address: str, port: int, delay: float) -> Optional[int]:
        """One timed connect. Returns elapsed nanoseconds or None."""
        if delay > 0:
            await asyncio.sleep(delay)

        start = time.perf_counter_ns()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=self.connect_timeout
            )
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Connect to {address}:{port} failed: {e!r}")
            return None
        elapsed_ns = time.perf_counter_ns() - start

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return elapsed_ns
