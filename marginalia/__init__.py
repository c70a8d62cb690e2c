"""Self-hosted reading list served as an HTML page and an RSS feed over WSGI."""

__version__ = "1.0.0"