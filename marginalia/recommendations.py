"""Stored recommendations: the model, its repository and the service around it."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Optional

from marginalia.errors import ServiceError
from marginalia.extract import Article, extract_from_url

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recommendation:
    """A recommended article."""

    id: int
    url: str
    title: str = ""
    byline: str = ""
    excerpt: str = ""
    content: str = ""
    site_name: str = ""
    added_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _row_to_rec(row: tuple) -> Recommendation:
    rec_id, url, *texts, added_at = row
    return Recommendation(rec_id, url, *(t or "" for t in texts), added_at=added_at or 0)


class Repository:
    """Reads and writes recommendations in SQLite."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection

    def insert(
        self, url: str, title: str, byline: str, excerpt: str, content: str, site_name: str
    ) -> Optional[Recommendation]:
        """Insert a recommendation; None when the URL is already stored."""
        row = self.connection.execute(
            """
            INSERT INTO recommendations (url, title, byline, excerpt, content, site_name)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(url) DO NOTHING
            RETURNING id, url, title, byline, excerpt, content, site_name, added_at
            """,
            (url, title, byline, excerpt, content, site_name),
        ).fetchone()
        return None if row is None else _row_to_rec(row)

    def delete(self, rec_id: int) -> bool:
        """Delete by id; whether a row was removed."""
        cur = self.connection.execute("DELETE FROM recommendations WHERE id = ?", (rec_id,))
        return cur.rowcount > 0

    def all(self) -> list[Recommendation]:
        """Every recommendation, newest first."""
        rows = self.connection.execute(
            "SELECT id, url, title, byline, excerpt, content, site_name, added_at "
            "FROM recommendations ORDER BY added_at DESC"
        )
        return [_row_to_rec(row) for row in rows]


class RecommendationService:
    """Adds, removes and lists recommendations, raising ServiceError on failure."""

    def __init__(
        self,
        repo: Repository,
        wayback: Any = None,
        extractor: Callable[[str], Article] = extract_from_url,
    ) -> None:
        self.repo = repo
        self.wayback = wayback
        self.extractor = extractor

    def _save_snapshot(self, url: str) -> None:
        try:
            self.wayback.request_save(url)
        except Exception as exc:  # noqa: BLE001 - background task, only logged
            log.warning("wayback save failed for %s: %s", url, exc)

    def insert(self, url: str) -> Recommendation:
        if not url:
            raise ServiceError("invalid url", 400)
        try:
            article = self.extractor(url)
        except Exception as exc:
            raise ServiceError(f"extraction failed: {exc}", 502) from exc

        if self.wayback is not None:
            threading.Thread(target=self._save_snapshot, args=(url,), daemon=True).start()

        try:
            rec = self.repo.insert(
                url, article.title, article.byline, article.excerpt, article.content, article.site_name
            )
        except sqlite3.Error as exc:
            log.error("failed to insert recommendation: %s", exc)
            raise ServiceError("failed to insert recommendation", 500) from exc
        if rec is None:
            raise ServiceError("url already exists", 409)
        return rec

    def delete(self, rec_id: int) -> None:
        try:
            found = self.repo.delete(rec_id)
        except sqlite3.Error as exc:
            log.error("failed to delete recommendation: %s", exc)
            raise ServiceError("failed to delete recommendation", 500) from exc
        if not found:
            raise ServiceError("not found", 404)

    def all(self) -> list[Recommendation]:
        try:
            return self.repo.all()
        except sqlite3.Error as exc:
            log.error("failed to fetch recommendations: %s", exc)
            raise ServiceError("failed to fetch recommendations", 500) from exc