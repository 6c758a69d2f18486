"""Database connection settings, read from the environment.

``DATABASE_URL`` wins when set; otherwise the URL is assembled from
``PG_HOST`` / ``PG_PORT`` / ``PG_USER`` / ``PG_PASSWORD`` / ``PG_DATABASE``.

Two flavours of the same URL are exposed:

  - ``get_async_url()`` — ``postgresql+asyncpg://``, used by the app at runtime
  - ``get_sync_url()``  — plain ``postgresql://``, used by Alembic migrations
"""

import os

_SYNC_PREFIX = "postgresql://"
_ASYNC_PREFIX = "postgresql+asyncpg://"


def _base_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "onboarding")
    password = os.getenv("PG_PASSWORD", "onboarding")
    database = os.getenv("PG_DATABASE", "onboarding")
    return f"{_SYNC_PREFIX}{user}:{password}@{host}:{port}/{database}"


def get_sync_url() -> str:
    """Return the URL with the default (synchronous) driver."""
    return _base_url().replace(_ASYNC_PREFIX, _SYNC_PREFIX, 1)


def get_async_url() -> str:
    """Return the URL with the asyncpg driver prefix."""
    url = _base_url()
    if url.startswith(_SYNC_PREFIX):
        return url.replace(_SYNC_PREFIX, _ASYNC_PREFIX, 1)
    return url


def redact_url(url: str) -> str:
    """Hide the password in ``url`` so it can be logged."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    credentials, _, location = rest.rpartition("@")
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{location}"
