"""
PostgreSQL-specific strategy implementation.

Uses the psycopg 3 driver. Generated ids come from the session-local
``lastval()`` and duplicate-skipping inserts use ON CONFLICT DO NOTHING.
"""
import logging
from typing import TYPE_CHECKING

import sqlalchemy as sa
from assetdb.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from assetdb.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query,
            )

    @classmethod
    def get_required_options(cls) -> list[str]:
        return ['hostname', 'username', 'database']

    def last_insert_id_sql(self) -> str:
        return 'SELECT lastval()'

    def insert_ignore_sql(self, table: str, columns: list[str], values: str) -> str:
        return (f"INSERT INTO {table} ({', '.join(columns)}) VALUES {values}"
                ' ON CONFLICT DO NOTHING')
