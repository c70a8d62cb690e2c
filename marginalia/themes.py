"""Loading the stylesheet for the list page."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

DEFAULT_THEME = "terminal"
THEMES_DIR = Path(__file__).resolve().parent / "resources" / "themes"


class ThemeError(Exception):
    """The base stylesheet or the named theme could not be read."""


def load_theme(name: str = "", themes_dir: Optional[Union[str, Path]] = None) -> str:
    """Return the theme's CSS followed by the base CSS; an empty name selects the default."""
    name = name or DEFAULT_THEME
    directory = Path(themes_dir) if themes_dir is not None else THEMES_DIR
    try:
        base = (directory / "base.css").read_bytes().decode("utf-8", errors="replace")
    except OSError as exc:
        raise ThemeError(f"reading base.css: {exc}") from exc

    if any(c in name for c in "/\\\x00") or name.startswith("."):
        raise ThemeError(f"unknown theme {name!r}: invalid name")
    try:
        theme = (directory / f"{name}.css").read_bytes().decode("utf-8", errors="replace")
    except OSError as exc:
        raise ThemeError(f"unknown theme {name!r}: {exc}") from exc
    return theme + "\n" + base