"""
Pytest configuration and fixtures for proximity-monitor tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


@pytest.fixture
def macos_ping_output():
    """ping -c 5 output as printed by macOS."""
    return (
        "PING 192.168.1.1 (192.168.1.1): 56 data bytes\n"
        "64 bytes from 192.168.1.1: icmp_seq=0 ttl=64 time=4.112 ms\n"
        "64 bytes from 192.168.1.1: icmp_seq=1 ttl=64 time=2.871 ms\n"
        "64 bytes from 192.168.1.1: icmp_seq=2 ttl=64 time=3.004 ms\n"
        "64 bytes from 192.168.1.1: icmp_seq=3 ttl=64 time=12.560 ms\n"
        "64 bytes from 192.168.1.1: icmp_seq=4 ttl=64 time=3.120 ms\n"
        "\n"
        "--- 192.168.1.1 ping statistics ---\n"
        "5 packets transmitted, 5 packets received, 0.0% packet loss\n"
        "round-trip min/avg/max/stddev = 2.871/5.133/12.560/3.738 ms\n"
    )


@pytest.fixture
def linux_ping_output():
    """ping -c 3 output as printed by iputils on Linux."""
    return (
        "PING 10.0.0.1 (10.0.0.1) 56(84) bytes of data.\n"
        "64 bytes from 10.0.0.1: icmp_seq=1 ttl=64 time=0.512 ms\n"
        "64 bytes from 10.0.0.1: icmp_seq=2 ttl=64 time=0.488 ms\n"
        "64 bytes from 10.0.0.1: icmp_seq=3 ttl=64 time=0.530 ms\n"
        "\n"
        "--- 10.0.0.1 ping statistics ---\n"
        "3 packets transmitted, 3 received, 0% packet loss, time 203ms\n"
        "rtt min/avg/max/mdev = 0.488/0.510/0.530/0.017 ms\n"
    )


@pytest.fixture
def arp_output():
    """arp -a output mixing macOS and Linux line shapes."""
    return (
        "? (192.168.1.1) at a4:2b:B0:11:22:33 on en0 ifscope [ethernet]\n"
        "? (192.168.1.23) at 3c:22:fb:aa:bb:cc on en0 ifscope [ethernet]\n"
        "? (192.168.1.40) at (incomplete) on en0 ifscope [ethernet]\n"
        "? (192.168.1.255) at ff:ff:ff:ff:ff:ff on en0 ifscope [ethernet]\n"
        "gateway (10.0.0.1) at 00:11:22:33:44:55 [ether] on eth0\n"
        "? (224.0.0.251) at FF:FF:FF:FF:FF:FF on en0 ifscope permanent [ethernet]\n"
    )
