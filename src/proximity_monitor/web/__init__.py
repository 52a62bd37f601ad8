"""
Web delivery module for proximity-monitor.

Provides HTTP server with:
- Health, status and Prometheus metrics
- JSON API endpoints for on-demand scans and RTT
- Server-Sent Events for live snapshots
"""

from .web_server import WebServer

__all__ = ['WebServer']
