"""Reading configuration values from the environment."""

from __future__ import annotations

import ipaddress
import os
from collections.abc import Iterable, Mapping
from typing import Optional

_BOOLS = {
    **dict.fromkeys(("1", "t", "T", "TRUE", "true", "True"), True),
    **dict.fromkeys(("0", "f", "F", "FALSE", "false", "False"), False),
}


def env_bool(name: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return the boolean value of a variable; unset or blank means False."""
    value = (os.environ if environ is None else environ).get(name, "").strip()
    if not value:
        return False
    if value not in _BOOLS:
        raise ValueError(f"invalid {name}: {value!r} is not a boolean")
    return _BOOLS[value]


def env_list(name: str, environ: Optional[Mapping[str, str]] = None) -> list[str]:
    """Return the non-empty, trimmed comma separated items of a variable."""
    value = (os.environ if environ is None else environ).get(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_prefix(value: str):
    addr_text, sep, bits = value.partition("/")
    if not sep or not (bits.isascii() and bits.isdigit()) or "%" in addr_text:
        raise ValueError("not an address or a prefix")
    addr = ipaddress.ip_address(addr_text)
    if int(bits) > addr.max_prefixlen:
        raise ValueError(f"prefix length {bits} out of range")
    return ipaddress.ip_network((int(addr), int(bits)) if addr.version == 4 else (addr, int(bits)), strict=False)


def parse_trusted_proxy_ranges(values: Iterable[str]) -> list:
    """Parse addresses and CIDR ranges; IPv4-mapped forms become IPv4."""
    prefixes = []
    for value in values:
        try:
            addr = ipaddress.ip_address(value)
        except ValueError:
            try:
                network = _parse_prefix(value)
            except ValueError as exc:
                raise ValueError(f"invalid TRUSTED_PROXIES entry {value!r}: {exc}") from exc
            mapped = getattr(network.network_address, "ipv4_mapped", None)
            if mapped is not None and network.prefixlen >= 96:
                network = ipaddress.IPv4Network((int(mapped), network.prefixlen - 96))
            prefixes.append(network)
            continue
        addr = getattr(addr, "ipv4_mapped", None) or addr
        prefixes.append(ipaddress.ip_network((addr, addr.max_prefixlen)))
    return prefixes