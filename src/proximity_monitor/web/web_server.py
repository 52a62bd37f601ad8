"""
Web Server for proximity-monitor.

Provides HTTP endpoints for:
- Health, status and Prometheus metrics
- On-demand JSON API (single scan, RTT to one address, neighbor table)
- Server-Sent Events stream fed by the broadcast scheduler

Runs in background threads; all measurement work is handed to the
service's asyncio loop.

Usage:
    from proximity_monitor.web import WebServer

    server = WebServer(port=3000)
    server.set_service(proximity_service)
    server.start()
"""

import json
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from socketserver import ThreadingMixIn
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

from ..engine.subscribers import QueueSubscriber
from ..interfaces.errors import InvalidAddressError, ScannerFailure
from ..sampling.address import validate_ipv4

logger = logging.getLogger(__name__)

# Seconds between SSE keep-alive comments when no snapshot arrives
KEEPALIVE_INTERVAL = 15.0

# Upper bound on one on-demand request (scanner + both samplers)
REQUEST_TIMEOUT = 30.0


class WebRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for proximity-monitor endpoints."""

    # Class-level reference, set by WebServer.set_service
    service = None

    def log_message(self, format, *args):
        """Suppress default HTTP logging for cleaner output."""
        pass

    def do_GET(self):
        """Handle GET requests."""
        path = urlparse(self.path).path

        if path == '/health':
            self._handle_health()
        elif path == '/status':
            self._handle_status()
        elif path == '/metrics':
            self._handle_metrics()
        elif path == '/api/scan':
            self._handle_api_scan()
        elif path.startswith('/api/rtt/'):
            self._handle_api_rtt(unquote(path[len('/api/rtt/'):]))
        elif path in ('/api/neighbors', '/api/arp'):
            self._handle_api_neighbors()
        elif path == '/events':
            self._handle_sse()
        else:
            self.send_error(404, "Not Found")

    def _send_json(self, data: Any, status: int = 200):
        """Send JSON response."""
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Access-Control-Allow-Origin', '*')
        self.end_headers()
        self.wfile.write(json.dumps(data, indent=2).encode())

    def _service_ready(self) -> bool:
        if self.service is None or self.service.loop is None:
            self._send_json({'error': 'Service not running'}, 503)
            return False
        return True

    # =========================================================================
    # Health endpoints
    # =========================================================================

    def _handle_health(self):
        """Basic health check."""
        self.send_response(200)
        self.send_header('Content-Type', 'text/plain')
        self.end_headers()
        self.wfile.write(b'OK\n')

    def _handle_status(self):
        """JSON scheduler status."""
        if self.service is None:
            self._send_json({'error': 'Service not running'}, 503)
            return
        try:
            self._send_json(self.service.get_status())
        except Exception as e:
            self._send_json({'error': str(e)}, 500)

    def _handle_metrics(self):
        """Prometheus-compatible metrics."""
        if self.service is None:
            self.send_response(503)
            self.send_header('Content-Type', 'text/plain')
            self.end_headers()
            self.wfile.write(b'# Service not running\n')
            return

        try:
            metrics = self._format_prometheus_metrics(self.service.get_status())
            self.send_response(200)
            self.send_header('Content-Type', 'text/plain; version=0.0.4')
            self.end_headers()
            self.wfile.write(metrics.encode())
        except Exception as e:
            self.send_response(500)
            self.send_header('Content-Type', 'text/plain')
            self.end_headers()
            self.wfile.write(f'# Error: {e}\n'.encode())

    def _format_prometheus_metrics(self, status: Dict[str, Any]) -> str:
        """Format status as Prometheus metrics."""
        lines = [
            '# HELP proximity_monitor_subscribers Live subscribers',
            '# TYPE proximity_monitor_subscribers gauge',
            f'proximity_monitor_subscribers {status.get("subscribers", 0)}',
            '',
            '# HELP proximity_monitor_timer_running Sampling timer state (1=running)',
            '# TYPE proximity_monitor_timer_running gauge',
            f'proximity_monitor_timer_running {1 if status.get("timer_running") else 0}',
            '',
            '# HELP proximity_monitor_cycles_total Sampling cycles executed',
            '# TYPE proximity_monitor_cycles_total counter',
            f'proximity_monitor_cycles_total {status.get("cycles_total", 0)}',
            '',
            '# HELP proximity_monitor_cycle_failures_total Cycles that ended in a scanner failure',
            '# TYPE proximity_monitor_cycle_failures_total counter',
            f'proximity_monitor_cycle_failures_total {status.get("cycle_failures_total", 0)}',
            '',
            '# HELP proximity_monitor_last_cycle_seconds Duration of the last cycle',
            '# TYPE proximity_monitor_last_cycle_seconds gauge',
            f'proximity_monitor_last_cycle_seconds {status.get("last_cycle_duration_s", 0):.6f}',
            '',
            '# HELP proximity_monitor_uptime_seconds Service uptime in seconds',
            '# TYPE proximity_monitor_uptime_seconds gauge',
            f'proximity_monitor_uptime_seconds {status.get("uptime_seconds", 0):.1f}',
            '',
        ]
        return '\n'.join(lines)

    # =========================================================================
    # On-demand API
    # =========================================================================

    def _handle_api_scan(self):
        """One aggregation cycle."""
        if not self._service_ready():
            return
        try:
            snapshot = self.service.call(self.service.scan_once(), REQUEST_TIMEOUT)
            self._send_json(snapshot.to_dict())
        except ScannerFailure as e:
            self._send_json({'error': str(e)}, 500)
        except Exception as e:
            logger.error(f"On-demand scan failed: {e}")
            self._send_json({'error': str(e)}, 500)

    def _handle_api_rtt(self, host: str):
        """RTT to one address by both methods."""
        if not self._service_ready():
            return
        try:
            validate_ipv4(host)
        except InvalidAddressError:
            self._send_json({'error': 'Invalid IP address'}, 400)
            return
        try:
            result = self.service.call(self.service.measure_rtt(host), REQUEST_TIMEOUT)
        except Exception as e:
            logger.error(f"On-demand RTT to {host} failed: {e}")
            self._send_json({'error': str(e)}, 500)
            return
        self._send_json(result.to_dict())

    def _handle_api_neighbors(self):
        """Current neighbor table."""
        if not self._service_ready():
            return
        try:
            entries = self.service.call(self.service.neighbors(), REQUEST_TIMEOUT)
        except Exception as e:
            logger.error(f"Neighbor lookup failed: {e}")
            self._send_json({'error': str(e)}, 500)
            return
        self._send_json([entry.to_dict() for entry in entries])

    # =========================================================================
    # Server-Sent Events
    # =========================================================================

    def _handle_sse(self):
        """
        Stream snapshots for as long as the client stays connected.

        A dropped client is only noticed on the next write, so its detach can
        lag by up to one tick or one keep-alive interval.
        """
        if not self._service_ready():
            return

        scheduler = self.service.scheduler
        subscriber = QueueSubscriber()
        try:
            self.service.call(scheduler.attach(subscriber), 5.0)
        except Exception as e:
            self._send_json({'error': f'Subscription failed: {e}'}, 503)
            return

        self.send_response(200)
        self.send_header('Content-Type', 'text/event-stream')
        self.send_header('Cache-Control', 'no-cache')
        self.send_header('Connection', 'keep-alive')
        self.send_header('Access-Control-Allow-Origin', '*')
        self.end_headers()

        try:
            while not subscriber.closed:
                message = subscriber.get(timeout=KEEPALIVE_INTERVAL)
                if message is None:
                    if subscriber.closed:
                        break
                    self.wfile.write(b': keep-alive\n\n')
                else:
                    self.wfile.write(f"data: {message}\n\n".encode())
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError):
            pass  # Client disconnected
        finally:
            subscriber.close()
            try:
                self.service.call(scheduler.detach(subscriber), 5.0)
            except Exception as e:
                logger.debug(f"Detach after disconnect failed: {e}")


class WebServer:
    """
    HTTP server for proximity-monitor.

    Runs in a background thread; each request (including each long-lived
    event stream) gets its own daemon thread.
    """

    def __init__(self, port: int = 3000, bind_address: str = '0.0.0.0'):
        """
        Initialize the web server.

        Args:
            port: HTTP port to listen on
            bind_address: Address to bind to (default: all interfaces)
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.service = None
        self._running = False

    def set_service(self, service):
        """
        Connect to a ProximityService for data.

        Args:
            service: ProximityService instance
        """
        self.service = service
        WebRequestHandler.service = service

    def start(self):
        """Start the web server in a background thread."""
        if self._running:
            logger.warning("Web server already running")
            return

        try:
            class ThreadedHTTPServer(ThreadingMixIn, HTTPServer):
                daemon_threads = True

            self.server = ThreadedHTTPServer(
                (self.bind_address, self.port),
                WebRequestHandler
            )
            self._running = True

            self.thread = threading.Thread(
                target=self._serve,
                name="WebServer",
                daemon=True
            )
            self.thread.start()

            logger.info(f"Web server started on http://{self.bind_address}:{self.port}")
            logger.info(f"  GET /api/scan       - Single scan")
            logger.info(f"  GET /api/rtt/<ip>   - RTT to one address")
            logger.info(f"  GET /api/neighbors  - Neighbor table")
            logger.info(f"  GET /events         - Server-Sent Events")

        except Exception as e:
            logger.error(f"Failed to start web server: {e}")
            self._running = False

    def _serve(self):
        """Server loop (runs in background thread)."""
        self.server.serve_forever()

    def stop(self):
        """Stop the web server."""
        self._running = False
        if self.server:
            try:
                self.server.shutdown()
                self.server.server_close()
            except Exception as e:
                logger.debug(f"Web server shutdown: {e}")
            self.server = None
        if self.thread:
            self.thread.join(timeout=2.0)
        logger.info("Web server stopped")
