"""Talking to the Wayback Machine: requesting snapshots and linking to them."""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone
from urllib.parse import quote, urlsplit, urlunsplit

import requests

log = logging.getLogger(__name__)

USER_AGENT = "Marginalia/1.0"
ARCHIVE_BASE = "https://web.archive.org/web"


class WaybackError(Exception):
    """The archive answered a save request with an error status."""


class WaybackClient:
    """Requests that the archive save a page."""

    def __init__(self, base_url: str, timeout: float) -> None:
        try:
            parts = urlsplit(base_url)
        except ValueError as exc:
            raise ValueError(f"invalid base URL: {exc}") from exc
        self._base = parts
        self.timeout = timeout

    def _save_url(self, target_url: str) -> str:
        path = posixpath.normpath(posixpath.join(self._base.path, "save"))
        if self._base.netloc and not path.startswith("/"):
            path = "/" + path
        path = f"{path}/{target_url}"
        escaped = quote(path, safe="/$&+,:;=@")
        return urlunsplit(self._base._replace(path=escaped))

    def request_save(self, target_url: str) -> None:
        """Ask the archive to snapshot the target; raise on failure."""
        url = self._save_url(target_url)
        try:
            resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("wayback: save failed for %s: %s", target_url, exc)
            raise
        with resp:
            _ = resp.content
        if resp.status_code >= 400:
            log.warning("wayback: save returned %d for %s", resp.status_code, target_url)
            raise WaybackError(f"wayback save failed with status {resp.status_code}")


def archive_url(t: datetime, target_url: str) -> str:
    """The archive URL of the snapshot of target_url nearest to t (naive is UTC)."""
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    stamp = t.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{ARCHIVE_BASE}/{stamp}/{target_url}"