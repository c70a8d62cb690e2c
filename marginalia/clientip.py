"""Working out a client's IP address from peer addresses and proxy headers."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from typing import Optional

DEFAULT_REAL_IP_HEADERS = ("CF-Connecting-IP", "True-Client-IP", "X-Real-IP", "X-Forwarded-For")


def _parse_addr(text: str):
    try:
        return ipaddress.ip_address(text)
    except ValueError:
        return None


def _parse_addr_port(text: str):
    bracketed = text.startswith("[")
    if bracketed:
        host, sep, port = text[1:].partition("]:")
    else:
        host, sep, port = text.rpartition(":")
    if not sep or not (port.isascii() and port.isdigit()) or int(port) > 0xFFFF:
        return None
    addr = _parse_addr(host)
    if addr is None or (addr.version == 6) != bracketed:
        return None
    return addr


def remote_host(remote_addr: str):
    """Parse "host:port" or a bare address; None when it is neither."""
    host = remote_addr.strip()
    addr = _parse_addr_port(host) or _parse_addr(host)
    if addr is None:
        return None
    return getattr(addr, "ipv4_mapped", None) or addr


def forwarded_client_ip(header: str, value: str, trusted_ranges: Iterable):
    """Return the client address a proxy header names, or None.

    For X-Forwarded-For the rightmost entry outside the trusted ranges wins.
    """
    candidate = value.strip()
    if not candidate:
        return None
    if header.casefold() != "x-forwarded-for":
        return remote_host(candidate)
    trusted = list(trusted_ranges)
    for part in reversed(candidate.split(",")):
        entry = remote_host(part)
        if entry is not None and not is_trusted_ip(entry, trusted):
            return entry
    return None


def is_trusted_ip(addr: Optional[object], prefixes: Iterable) -> bool:
    """Whether the address lies in any of the given ranges."""
    if addr is None or getattr(addr, "scope_id", None):
        return False
    return any(prefix.version == addr.version and addr in prefix for prefix in prefixes)