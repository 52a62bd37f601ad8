#!/usr/bin/env python3
"""
proximity-monitor: Wi-Fi RSSI + RTT proximity telemetry daemon

Main entry point. This service:
1. Runs the external Wi-Fi signal scanner
2. Reads the OS neighbor (ARP) table
3. Measures RTT to the gateway by TCP connect timing and by ping
4. Streams one merged snapshot per interval to every live subscriber

Usage:
    # Start with defaults (HTTP on port 3000, 3 s interval)
    proximity-monitor

    # Start with a config file
    proximity-monitor --config /etc/proximity-monitor/config.toml

Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                      proximity-monitor                        │
    │                                                               │
    │  ┌──────────┐                                                 │
    │  │ scanner  │──┐                                              │
    │  └──────────┘  │   ┌───────────────┐   ┌──────────────────┐   │
    │  ┌──────────┐  ├──▶│ ScanAggregator│──▶│BroadcastScheduler│──▶ SSE clients
    │  │ arp -a   │──┤   └───────────────┘   └──────────────────┘   │
    │  └──────────┘  │                                              │
    │  ┌──────────┐  │                                              │
    │  │ TCP/ping │──┘                                              │
    │  └──────────┘                                                 │
    └──────────────────────────────────────────────────────────────┘

RTT here is transport-level: it includes ~0.1-2 ms of processing
overhead beyond signal flight time.
"""

import argparse
import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('proximity-monitor')

from .engine.service import ProximityService


DEFAULT_CONFIG: Dict[str, Any] = {
    'scanner': {
        'path': './WifiScanner.app/Contents/MacOS/wifi-scanner',
        'timeout': 10.0,
        'gateway_field': 'gatewayIP',
    },
    'schedule': {
        'interval': 3.0,
    },
    'tcp': {
        'port': 80,
        'samples': 5,
        'connect_timeout': 2.0,
        'stagger': 0.05,
    },
    'probe': {
        'command': 'ping',
        'samples': 10,
        'spacing': 0.1,
        'timeout': 15.0,
    },
    'neighbors': {
        'command': ['arp', '-a'],
        'timeout': 5.0,
    },
    'web': {
        'port': 3000,
        'bind_address': '0.0.0.0',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay override onto base (in place)."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file over the built-in defaults.

    The PORT environment variable overrides [web].port.

    Args:
        config_path: Path to TOML file; missing or None uses defaults

    Returns:
        Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path:
        if Path(config_path).exists():
            with open(config_path, 'r') as f:
                _merge(config, toml.load(f))
        else:
            logger.warning(f"Config file {config_path} not found, using defaults")

    env_port = os.environ.get('PORT')
    if env_port:
        config['web']['port'] = int(env_port)
    return config


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='proximity-monitor: Wi-Fi RSSI + RTT proximity telemetry',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with config file
    proximity-monitor --config /etc/proximity-monitor/config.toml

    # Custom scanner binary and a faster cadence
    proximity-monitor --scanner /usr/local/bin/wifi-scanner --interval 1.5

    # HTTP on another port
    proximity-monitor --port 8080
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--port', '-p',
        type=int,
        help='HTTP port (default: 3000, 0 to disable)'
    )
    parser.add_argument(
        '--scanner',
        help='Path to the Wi-Fi scanner executable'
    )
    parser.add_argument(
        '--interval',
        type=float,
        help='Seconds between broadcast cycles (default: 3.0)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    # Apply command-line overrides
    if args.port is not None:
        config['web']['port'] = args.port
    if args.scanner:
        config['scanner']['path'] = args.scanner
    if args.interval is not None:
        if args.interval <= 0:
            parser.error('--interval must be positive')
        config['schedule']['interval'] = args.interval

    service = ProximityService(config)
    service.run()


if __name__ == '__main__':
    main()
