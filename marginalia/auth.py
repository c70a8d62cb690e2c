"""Bearer token authentication with optional rate limiting of failures."""

from __future__ import annotations

import dataclasses
import hashlib
import hmac
import ipaddress
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from werkzeug.datastructures import Headers
from werkzeug.wrappers import Request, Response

from marginalia.clientip import (
    DEFAULT_REAL_IP_HEADERS,
    forwarded_client_ip,
    is_trusted_ip,
    remote_host,
)
from marginalia.ratelimit import FailedAuthLimiter
from marginalia.responses import json_error

log = logging.getLogger(__name__)

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


@dataclass(frozen=True)
class AuthConfig:
    """Settings for token authentication and client identification."""

    token: str
    enable_rate_limit: bool = False
    trust_proxy: bool = False
    real_ip_headers: tuple[str, ...] = ()
    trusted_proxy_ranges: tuple[Network, ...] = field(default_factory=tuple)

    def with_defaults(self) -> AuthConfig:
        """A copy with the default real-IP headers filled in when none are set."""
        if self.real_ip_headers:
            return self
        return dataclasses.replace(self, real_ip_headers=tuple(DEFAULT_REAL_IP_HEADERS))

    def _uses_trusted_proxy(self, peer: Any) -> bool:
        if not self.trust_proxy:
            return False
        if not self.trusted_proxy_ranges:
            return True
        return is_trusted_ip(peer, self.trusted_proxy_ranges)

    def client_identity(self, remote_addr: str, headers: Any) -> tuple[str, bool]:
        """Return the client identifier and whether it came from a proxy header."""
        hdrs = headers if isinstance(headers, Headers) else Headers(
            list(headers.items()) if isinstance(headers, Mapping) else headers
        )
        remote_addr = remote_addr or ""
        peer = remote_host(remote_addr)
        if self._uses_trusted_proxy(peer):
            for header in self.real_ip_headers:
                client_ip = forwarded_client_ip(
                    header, hdrs.get(header, ""), self.trusted_proxy_ranges
                )
                if client_ip is not None:
                    return str(client_ip), True
            log.warning(
                "proxy warning: peer %s is trusted but no valid client IP found in "
                "headers %s, falling back to peer address",
                remote_addr,
                list(self.real_ip_headers),
            )
        if peer is not None:
            return str(peer), False
        return remote_addr.strip(), False


def bearer_token(header: str) -> Optional[str]:
    """The token of an "Authorization: Bearer <token>" value, or None."""
    parts = (header or "").split()
    if len(parts) != 2 or parts[0].casefold() != "bearer":
        return None
    return parts[1]


def constant_time_match(provided: str, expected_hash: bytes) -> bool:
    """Compare the SHA-256 of a token with an expected digest in constant time."""
    if not provided:
        return False
    digest = hashlib.sha256(provided.encode("utf-8")).digest()
    return hmac.compare_digest(digest, expected_hash)


def _log_denied(
    request: Request, client_id: str, proxied: bool, reason: str,
    blocked_until: Optional[datetime] = None,
) -> None:
    if blocked_until is None:
        log.info(
            "auth denied: method=%s path=%s client=%s proxied=%s reason=%s",
            request.method, request.path, client_id, proxied, reason,
        )
        return
    until = blocked_until.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    log.info(
        "auth denied: method=%s path=%s client=%s proxied=%s reason=%s blocked_until=%s",
        request.method, request.path, client_id, proxied, reason, until,
    )


class TokenAuth:
    """Checks bearer tokens on requests, blocking clients that fail too often."""

    def __init__(self, config: AuthConfig, limiter: Optional[FailedAuthLimiter] = None) -> None:
        self.config = config
        self.limiter = limiter
        self._expected_hash = hashlib.sha256(config.token.encode("utf-8")).digest()

    def authorize(self, request: Request, now: Optional[datetime] = None) -> Optional[Response]:
        """None when the request may proceed, otherwise the error response to send."""
        if now is None:
            now = datetime.now(timezone.utc)
        client_id, proxied = self.config.client_identity(request.remote_addr or "", request.headers)

        if self.limiter is not None:
            blocked_until, blocked = self.limiter.blocked(client_id, now)
            if blocked:
                _log_denied(request, client_id, proxied, "rate_limited", blocked_until)
                return json_error("too many failed authentication attempts", 429)

        provided = bearer_token(request.headers.get("Authorization", ""))
        if provided is not None and constant_time_match(provided, self._expected_hash):
            return None

        if self.limiter is not None:
            blocked_until, newly_blocked = self.limiter.check_and_record(client_id, now)
            if newly_blocked:
                _log_denied(request, client_id, proxied, "rate_limited", blocked_until)
                return json_error("too many failed authentication attempts", 429)

        _log_denied(request, client_id, proxied, "invalid_token")
        return json_error("unauthorized", 401)