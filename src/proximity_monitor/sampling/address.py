"""IPv4 literal validation for on-demand measurement requests."""

import ipaddress
import re

from ..interfaces.errors import InvalidAddressError

_IPV4_PATTERN = re.compile(r'\d{1,3}(\.\d{1,3}){3}')


def is_ipv4_literal(address) -> bool:
    """True if address is four dot-separated octets, each 0-255."""
    if not isinstance(address, str) or not _IPV4_PATTERN.fullmatch(address):
        return False
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return True


def validate_ipv4(address) -> str:
    """
    Reject anything that is not a well-formed IPv4 literal.

    Hostnames are refused as well, so no resolution or probing ever
    happens for a bad request.

    Args:
        address: Candidate address string

    Returns:
        The address unchanged

    Raises:
        InvalidAddressError: If the address is malformed
    """
    if not is_ipv4_literal(address):
        raise InvalidAddressError(f"Invalid IP address: {address!r}")
    return address
