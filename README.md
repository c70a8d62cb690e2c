# marginalia

A small self-hosted reading list. Send it the address of an article you think is
worth reading; it downloads the page, pulls out the readable parts (title, byline,
excerpt, body, site name), stores them in SQLite, asks the Wayback Machine in the
background to take a snapshot, and publishes everything as:

- an HTML page at `/`, newest first, each entry linking to the original and to its
  archived snapshot;
- an RSS 2.0 feed at `/rss`, with the full article content, `ETag` and
  `Last-Modified` headers, and `304 Not Modified` answers to conditional requests.

Adding and removing entries is protected by a bearer token.

## Installing

```
pip install .
```

## Running

The server is configured through environment variables and started with the
`marginalia` command, which serves on all interfaces with Werkzeug's threaded
development server:

```
TOKEN=token OWNER=Alice THEMES_DIR=./themes marginalia
```

| Variable          | Meaning                                                                 | Default              |
|-------------------|-------------------------------------------------------------------------|----------------------|
| `TOKEN`           | Bearer token required to add or delete entries. Required.               |                      |
| `OWNER`           | Name shown in the page and feed titles ("Alice's Marginalia", "James' Marginalia"). | empty ("Marginalia") |
| `THEME`           | Name of the stylesheet for the HTML page (`<THEME>.css`).               | `terminal`           |
| `THEMES_DIR`      | Directory holding `base.css` and the theme stylesheets.                 | `marginalia/resources/themes` |
| `PORT`            | Port to listen on (0–65535).                                            | `9595`               |
| `DB_PATH`         | SQLite database file; its directory is created if missing.              | `data/marginalia.db` |
| `AUTH_RATE_LIMIT` | Block a client for 10 minutes after 5 failed logins within a minute.    | `false`              |
| `TRUST_PROXY`     | Take the client address from proxy headers when the peer is trusted.    | `false`              |
| `REAL_IP_HEADERS` | Comma-separated headers to read the client address from, in order.      | `CF-Connecting-IP, True-Client-IP, X-Real-IP, X-Forwarded-For` |
| `TRUSTED_PROXIES` | Comma-separated addresses or CIDR ranges of trusted proxies.            | empty (all peers trusted when `TRUST_PROXY` is on) |

Boolean variables accept `1`, `t`, `T`, `true`, `True`, `TRUE` and `0`, `f`, `F`,
`false`, `False`, `FALSE`; blank means false. Anything else, an invalid
`TRUSTED_PROXIES` entry, an invalid `PORT`, a missing `TOKEN`, or a theme that
cannot be read makes the command log the problem and exit with status 1.

The page's stylesheet is the theme file followed by `base.css`. Theme names
containing `/`, `\` or starting with `.` are rejected.

For `X-Forwarded-For` the rightmost address outside the trusted ranges is taken
as the client; other headers are read as a single address.

## What it does not include

- **No stylesheets.** The package ships no CSS files. Put a `base.css` and a
  `<theme>.css` (by default `terminal.css`) in a directory and point `THEMES_DIR`
  at it, or the server will not start.
- **No snapshot icon.** The archive link on the list page is shown with an icon
  read from `marginalia/resources/images/building.columns.fill.svg`; that file is
  not shipped, so the link is empty unless you add it.
- **Simple article extraction.** `marginalia.extract.extract_article` reads the
  title, author, site name and description from `<title>` and `<meta>` tags, drops
  scripts, navigation, headers, footers, forms and the like, and keeps the first
  of `<article>`, `<main>`, `[role="main"]` or `<body>` as the content. It does not
  score or clean up page sections beyond that.

## HTTP API

API responses are JSON; errors have the form `{"error": "..."}`. Every response
allows any origin, and `OPTIONS` requests are answered with `204 No Content`.

`POST /recommend` — requires `Authorization: Bearer token`. Body:
`{"url": "https://example.com/some-article"}`. Answers `201` with
`{"id": 1, "title": "..."}`, `400` for a missing or invalid URL, `409` if the URL
is already stored, `502` if the article could not be fetched or extracted.

`DELETE /recommend/<id>` — requires the token. Answers `204`, `400` for a
malformed id, or `404` if there is no such entry.

`GET /rss` — the feed. `If-None-Match` matching the `ETag`, or an
`If-Modified-Since` not earlier than the newest entry, gets `304`.

`GET /` — the HTML page.

A missing or wrong token gets `401`; with rate limiting enabled, a blocked client
gets `429`. Unknown paths get `404`, known paths with the wrong method `405`.

## Using it as a library

```python
from marginalia.cli import build_app
from marginalia.server import create_app

app = build_app({
    "TOKEN": "token",
    "OWNER": "Alice",
    "THEMES_DIR": "themes",
    "DB_PATH": "data/marginalia.db",
})
wsgi_app = create_app(app)
# ... host wsgi_app with any WSGI server, then:
app.database.close()
```

`build_app` raises `ValueError` for bad settings and
`marginalia.themes.ThemeError` when the theme cannot be loaded.

Other parts that can be used on their own:

- `marginalia.recommendations.RecommendationService` and `Repository` — add,
  delete and list stored recommendations; failures raise
  `marginalia.errors.ServiceError` carrying a reason and an HTTP status code.
- `marginalia.feed.FeedService.render_rss(owner)` — returns an `RssOutput` with
  the feed bytes, its `etag` and `last_modified`.
- `marginalia.extract.extract_article(html, url)` and `extract_from_url(url)`.
- `marginalia.ratelimit.FailedAuthLimiter` and `default_failed_auth_limiter()`.
- `marginalia.auth.AuthConfig` and `TokenAuth`.
- `marginalia.wayback.WaybackClient` and `archive_url(time, url)`.
- `marginalia.database.open_database(path)`.

## Tests

```
pip install ".[test]"
pytest
```