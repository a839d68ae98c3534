"""
Connection options and target resolution.

The target database is resolved once, when a Connection is built:
an explicit URL or options object wins, then the ``DBURL`` environment
variable, then the compiled-in default.
"""
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import sqlalchemy as sa
from assetdb.strategy import get_strategy, get_strategy_class, supported_dialects

__all__ = [
    'DBURL_ENV',
    'DEFAULT_URL',
    'DatabaseOptions',
    'as_options',
]

logger = logging.getLogger(__name__)

DBURL_ENV = 'DBURL'
DEFAULT_URL = 'postgresql+psycopg://postgres@localhost/box_utf8'


@dataclass
class DatabaseOptions:
    """Options

    Either `url` (any SQLAlchemy URL) or the discrete fields are used to
    locate the database. Supported driver names: `postgresql`, `sqlite`,
    `mysql`.

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_size: Maximum connections in pool (default: 5)
    - pool_recycle: Maximum seconds a connection can be idle (default: 300)
    - pool_timeout: Maximum seconds to wait for a connection (default: 30)
    """
    url: str | None = None
    drivername: str = 'postgresql'
    hostname: str | None = None
    username: str | None = None
    password: str | None = None
    database: str | None = None
    port: int = 0
    timeout: int = 0
    use_pool: bool = False
    pool_size: int = 5
    pool_recycle: int = 300
    pool_timeout: int = 30

    def __post_init__(self):
        if self.url:
            self.drivername = sa.make_url(self.url).get_backend_name()
        if self.drivername not in supported_dialects():
            raise ValueError(f'drivername must be one of: {list(supported_dialects())}')
        get_strategy_class(self.drivername).validate_options(self)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None,
                 default: str = DEFAULT_URL, **kw: Any) -> 'DatabaseOptions':
        """Build options from the ``DBURL`` override, else the default URL.
        """
        environ = os.environ if environ is None else environ
        url = environ.get(DBURL_ENV)
        if url:
            logger.debug(f'Using database URL from ${DBURL_ENV}')
        else:
            url = default
        return cls(url=url, **kw)

    def to_url(self) -> sa.URL:
        """Return the SQLAlchemy URL these options point at."""
        if self.url:
            return sa.make_url(self.url)
        return get_strategy(self.drivername).build_connection_url(self)

    @property
    def dsn(self) -> str:
        """Rendered URL, password included, used as the engine cache key."""
        return self.to_url().render_as_string(hide_password=False)


def as_options(value: 'DatabaseOptions | Mapping[str, Any] | str | None' = None,
               **kw: Any) -> DatabaseOptions:
    """Coerce a URL string, mapping or options object into DatabaseOptions.

    None resolves through the environment (see `DatabaseOptions.from_env`).
    """
    if isinstance(value, DatabaseOptions):
        return value
    if value is None:
        return DatabaseOptions.from_env(**kw)
    if isinstance(value, str):
        return DatabaseOptions(url=value, **kw)
    if isinstance(value, Mapping):
        return DatabaseOptions(**{**value, **kw})
    raise TypeError(f'Cannot build DatabaseOptions from {type(value).__name__}')
