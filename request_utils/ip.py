"""Public IP literal validation for client-IP resolution."""

from __future__ import annotations

import ipaddress

# Private ranges
_PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("fc00::/7"),  # IPv6 unique local
]

# Reserved ranges
_RESERVED_NETWORKS = [
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # link-local
    ipaddress.ip_network("240.0.0.0/4"),  # includes 255.255.255.255
    ipaddress.ip_network("::/128"),  # IPv6 unspecified
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fe80::/10"),  # IPv6 link-local
]

_BLOCKED_NETWORKS = _PRIVATE_NETWORKS + _RESERVED_NETWORKS


def _normalize_ip(addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """Normalize IPv4-mapped IPv6 addresses to their IPv4 equivalent.

    ::ffff:10.0.0.1 → 10.0.0.1, so it correctly matches IPv4 private networks.
    """
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped:
        return addr.ipv4_mapped
    return addr


def parse_ip(value: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse a bare IP literal, returning None for anything else.

    Zone IDs (``fe80::1%eth0``) are rejected; they are never a client address.
    """
    if not value or "%" in value:
        return None
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        return None


def is_public_ip(value: str) -> bool:
    """Return True if value is a well-formed IP outside private/reserved ranges."""
    addr = parse_ip(value)
    if addr is None:
        return False
    normalized = _normalize_ip(addr)
    return not any(normalized in net for net in _BLOCKED_NETWORKS)
