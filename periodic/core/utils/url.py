# periodic/core/utils/url.py
"""URL helpers for safe logging of storage connection strings."""

from __future__ import annotations

from urllib.parse import urlparse, urlunparse


def mask_database_url(url: str) -> str:
    """Mask the password in a database URL for logging.

    Uses ``urlparse``; falls back to string splitting if the URL cannot be
    parsed (e.g. an invalid port).
    """
    try:
        parsed = urlparse(url)
        if not parsed.password:
            return url
        netloc = parsed.netloc.replace(f':{parsed.password}@', ':***@')
        return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        if '@' not in url:
            return url
        pre, post = url.split('@', 1)
        scheme_user = pre.rsplit(':', 1)[0]
        return f'{scheme_user}:***@{post}'


def url_scheme(url: str) -> str:
    """Return the scheme part (``postgresql+psycopg``) or '' when absent."""
    return url.split('://', 1)[0] if '://' in url else ''
