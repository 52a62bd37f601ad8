"""
Proximity service - wires samplers, aggregator, scheduler and web server.

The asyncio event loop runs in the main thread and owns all sampling.
The HTTP server runs in background threads and reaches the loop through
ProximityService.call().
"""

import asyncio
import concurrent.futures
import logging
import signal
import socket
import time
from typing import Any, Dict, List, Optional

from ..interfaces.measurement_result import GatewayRtt, NeighborEntry, ScanSnapshot
from ..sampling.address import validate_ipv4
from ..sampling.neighbors import NeighborResolver
from ..sampling.probe_rtt import ProbeRttSampler
from ..sampling.tcp_rtt import TcpRttSampler
from .broadcast_scheduler import BroadcastScheduler
from .scan_aggregator import ScanAggregator

logger = logging.getLogger(__name__)


def get_local_ip() -> str:
    """Best-effort LAN address of this host, for the startup banner."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # No packet is sent; connect() only selects the outbound interface
            sock.connect(('10.255.255.255', 1))
            return sock.getsockname()[0]
    except OSError:
        return 'localhost'


class ProximityService:
    """
    Long-running proximity telemetry service.

    Exposes the on-demand query interface (scan_once, measure_rtt,
    neighbors) alongside the subscription scheduler.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Configuration dictionary (see main.load_config)
        """
        self.config = config
        scanner_cfg = config.get('scanner', {})
        tcp_cfg = config.get('tcp', {})
        probe_cfg = config.get('probe', {})
        neighbor_cfg = config.get('neighbors', {})

        self.scanner_path = scanner_cfg.get('path', 'wifi-scanner')
        self.interval = float(config.get('schedule', {}).get('interval', 3.0))

        self.aggregator = ScanAggregator(
            scanner_command=[self.scanner_path],
            scanner_timeout=float(scanner_cfg.get('timeout', 10.0)),
            gateway_field=scanner_cfg.get('gateway_field', 'gatewayIP'),
            tcp_sampler=TcpRttSampler(
                connect_timeout=float(tcp_cfg.get('connect_timeout', 2.0)),
                stagger=float(tcp_cfg.get('stagger', 0.05)),
            ),
            probe_sampler=ProbeRttSampler(
                command=probe_cfg.get('command', 'ping'),
                spacing=float(probe_cfg.get('spacing', 0.1)),
                timeout=float(probe_cfg.get('timeout', 15.0)),
            ),
            neighbor_resolver=NeighborResolver(
                command=neighbor_cfg.get('command', ['arp', '-a']),
                timeout=float(neighbor_cfg.get('timeout', 5.0)),
            ),
            tcp_port=int(tcp_cfg.get('port', 80)),
            tcp_samples=int(tcp_cfg.get('samples', 5)),
            probe_samples=int(probe_cfg.get('samples', 10)),
        )
        self.scheduler = BroadcastScheduler(self.aggregator, interval=self.interval)

        self.web_server = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.start_time = time.time()

    # =========================================================================
    # On-demand queries
    # =========================================================================

    async def scan_once(self) -> ScanSnapshot:
        """
        Single aggregation cycle, independent of subscriptions.

        Goes through the scheduler so it never overlaps a broadcast cycle.
        """
        return await self.scheduler.run_cycle()

    async def measure_rtt(self, address: str) -> GatewayRtt:
        """
        Both RTT measurements against one address.

        Raises:
            InvalidAddressError: Before any I/O, if address is not IPv4
        """
        validate_ipv4(address)
        return await self.aggregator.measure_rtt(address)

    async def neighbors(self) -> List[NeighborEntry]:
        return await self.aggregator.neighbor_resolver.resolve()

    def call(self, coro, timeout: Optional[float] = None):
        """Run a coroutine on the service loop from another thread and wait."""
        if self.loop is None:
            coro.close()
            raise RuntimeError("Service loop not running")
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    def get_status(self) -> Dict[str, Any]:
        stats = self.scheduler.stats
        return {
            'timestamp': time.time(),
            'state': self.scheduler.state.value,
            'subscribers': self.scheduler.subscriber_count,
            'timer_running': self.scheduler.timer_running,
            'interval_s': self.interval,
            'scanner': self.scanner_path,
            'ticks_total': stats['ticks_total'],
            'ticks_skipped': stats['ticks_skipped'],
            'cycles_total': stats['cycles_total'],
            'cycle_failures_total': stats['cycle_failures_total'],
            'deliveries_total': stats['deliveries_total'],
            'last_cycle_duration_s': stats['last_cycle_duration_s'],
            'uptime_seconds': time.time() - self.start_time,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def serve(self):
        """Run until request_stop() or SIGINT/SIGTERM."""
        self.loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self.start_time = time.time()
        self.scheduler.start()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                self.loop.add_signal_handler(signum, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                pass

        web_cfg = self.config.get('web', {})
        web_port = int(web_cfg.get('port', 3000))
        if web_port > 0:
            from ..web import WebServer
            self.web_server = WebServer(
                port=web_port,
                bind_address=web_cfg.get('bind_address', '0.0.0.0')
            )
            self.web_server.set_service(self)
            self.web_server.start()

        self._log_banner(web_port)

        try:
            await self._stop_event.wait()
        finally:
            if self.web_server:
                await self.loop.run_in_executor(None, self.web_server.stop)
                self.web_server = None
            await self.scheduler.stop()
            logger.info(f"Uptime: {time.time() - self.start_time:.1f}s")

    def request_stop(self):
        if self._stop_event is not None:
            logger.info("Shutdown requested")
            self._stop_event.set()

    def run(self):
        """Run the service (blocking)."""
        asyncio.run(self.serve())

    def _log_banner(self, web_port: int):
        logger.info("=" * 60)
        logger.info("Wi-Fi RTT proximity monitor")
        if web_port > 0:
            logger.info(f"  HTTP:     http://localhost:{web_port}")
            logger.info(f"  LAN:      http://{get_local_ip()}:{web_port}")
        else:
            logger.info("  HTTP:     disabled")
        logger.info(f"  Scanner:  {self.scanner_path}")
        logger.info("  Mode:     RSSI + RTT hybrid")
        logger.info(f"  Interval: {self.interval:.1f}s")
        logger.info("=" * 60)
