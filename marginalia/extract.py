"""Fetching a web page and extracting its readable article."""

from __future__ import annotations

from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup, Tag

USER_AGENT = "Mozilla/5.0 (compatible; Marginalia/1.0)"
FETCH_TIMEOUT = 30.0
_NOISE = ("script", "style", "noscript", "nav", "header", "footer", "aside", "form", "iframe")


class ExtractionError(Exception):
    """A page could not be fetched or its article could not be extracted."""


@dataclass(frozen=True)
class Article:
    """The readable parts of a web page."""

    title: str = ""
    byline: str = ""
    excerpt: str = ""
    content: str = ""
    site_name: str = ""


def _meta(soup: BeautifulSoup, *keys: str) -> str:
    for key in keys:
        for attr in ("property", "name"):
            tag = soup.find("meta", attrs={attr: key})
            if isinstance(tag, Tag) and (tag.get("content") or "").strip():
                return tag["content"].strip()
    return ""


def extract_article(html: str, url: str = "") -> Article:
    """Extract title, byline, excerpt, content and site name from a page."""
    soup = BeautifulSoup(html, "html.parser")
    title = _meta(soup, "og:title", "twitter:title")
    if not title and soup.title is not None:
        title = soup.title.get_text(strip=True)
    byline = _meta(soup, "author", "article:author")
    site_name = _meta(soup, "og:site_name", "application-name")
    excerpt = _meta(soup, "og:description", "description", "twitter:description")

    for tag in soup.find_all(_NOISE):
        tag.decompose()
    node = next(
        (n for n in map(soup.select_one, ("article", "main", '[role="main"]', "body")) if n),
        None,
    )
    if node is None:
        raise ExtractionError(f"no content found in {url or 'page'}")

    if not excerpt:
        texts = (p.get_text(" ", strip=True) for p in node.find_all("p"))
        excerpt = next((text[:300] for text in texts if text), "")
    if not title and node.find("h1") is not None:
        title = node.find("h1").get_text(strip=True)

    content = f'<div id="readability-page-1" class="page">{node.decode_contents().strip()}</div>'
    return Article(title, byline, excerpt, content, site_name)


def extract_from_url(raw_url: str) -> Article:
    """Download a page and extract its article."""
    try:
        resp = requests.get(raw_url, headers={"User-Agent": USER_AGENT}, timeout=FETCH_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise ExtractionError(f"extract article: {exc}") from exc
    return extract_article(resp.text, raw_url)