"""
SQLite-specific strategy implementation.

Handles SQLite's particulars:
- In-memory databases must share a single connection (StaticPool)
- Foreign keys are off unless enabled per connection
- INSERT OR IGNORE for duplicate-skipping inserts
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from assetdb.strategy.base import DatabaseStrategy, register_strategy
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from assetdb.options import DatabaseOptions

logger = logging.getLogger(__name__)

MEMORY_DATABASES = {None, '', ':memory:'}


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite.

        An in-memory database only exists as long as its one connection, so
        every Connection has to share it.
        """
        if options.to_url().database in MEMORY_DATABASES:
            logger.debug('Using a shared static pool for in-memory SQLite')
            return {
                'poolclass': StaticPool,
                'connect_args': {'check_same_thread': False},
                }
        return super().get_engine_kwargs(options)

    def configure_connection(self, dbapi_connection: Any) -> None:
        """Enable foreign key enforcement for the new connection.
        """
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute('PRAGMA foreign_keys = ON')
        finally:
            cursor.close()

    def last_insert_id_sql(self) -> str:
        return 'SELECT last_insert_rowid()'

    def insert_ignore_sql(self, table: str, columns: list[str], values: str) -> str:
        return f"INSERT OR IGNORE INTO {table} ({', '.join(columns)}) VALUES {values}"
