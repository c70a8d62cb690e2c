"""Starting the server from environment settings."""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Mapping
from typing import Optional

from werkzeug.serving import run_simple

from marginalia.auth import AuthConfig
from marginalia.database import open_database
from marginalia.feed import FeedService
from marginalia.recommendations import RecommendationService, Repository
from marginalia.server import App, create_app
from marginalia.settings import env_bool, env_list, parse_trusted_proxy_ranges
from marginalia.themes import ThemeError, load_theme
from marginalia.wayback import WaybackClient

log = logging.getLogger(__name__)


def build_app(environ: Optional[Mapping[str, str]] = None) -> App:
    """Assemble the App from environment settings; the caller closes its database."""
    env = os.environ if environ is None else environ
    token = env.get("TOKEN", "")
    if not token:
        raise ValueError("TOKEN is required")

    try:
        theme = load_theme(env.get("THEME", ""), env.get("THEMES_DIR") or None)
    except ThemeError as exc:
        raise ThemeError(f"failed to load theme: {exc}") from exc

    database = open_database(env.get("DB_PATH") or "data/marginalia.db")
    try:
        auth_config = AuthConfig(
            token=token,
            enable_rate_limit=env_bool("AUTH_RATE_LIMIT", env),
            trust_proxy=env_bool("TRUST_PROXY", env),
            real_ip_headers=tuple(env_list("REAL_IP_HEADERS", env)),
            trusted_proxy_ranges=tuple(parse_trusted_proxy_ranges(env_list("TRUSTED_PROXIES", env))),
        )
    except ValueError:
        database.close()
        raise

    if auth_config.trust_proxy and not auth_config.trusted_proxy_ranges:
        log.warning(
            "WARNING: TRUST_PROXY is enabled but TRUSTED_PROXIES is empty — "
            "all peers are trusted to set client IP headers"
        )

    recommendations = RecommendationService(
        Repository(database), WaybackClient("https://web.archive.org", 30.0)
    )
    return App(
        auth_config=auth_config,
        database=database,
        owner=env.get("OWNER", ""),
        theme=theme,
        feed=FeedService(recommendations),
        recommendations=recommendations,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Run the server; settings come from the environment."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    try:
        port_text = os.environ.get("PORT") or "9595"
        if not (port_text.isascii() and port_text.isdigit()) or int(port_text) > 0xFFFF:
            raise ValueError(f"invalid PORT: {port_text!r}")
        app = build_app(os.environ)
    except (ValueError, ThemeError, OSError, sqlite3.Error) as exc:
        log.critical("%s", exc)
        return 1

    port = int(port_text)
    try:
        log.info(
            "marginalia listening on :%d (rate_limit=%s trust_proxy=%s)",
            port,
            str(app.auth_config.enable_rate_limit).lower(),
            str(app.auth_config.trust_proxy).lower(),
        )
        run_simple("0.0.0.0", port, create_app(app), threaded=True)
    except OSError as exc:
        log.critical("%s", exc)
        return 1
    finally:
        app.database.close()
    return 0