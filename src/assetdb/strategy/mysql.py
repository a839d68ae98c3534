"""
MySQL/MariaDB-specific strategy implementation.

The asset database this package was written for lives in MariaDB; the
PyMySQL driver is an optional extra (``pip install assetdb[mysql]``).
"""
import logging
from typing import TYPE_CHECKING

import sqlalchemy as sa
from assetdb.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from assetdb.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        return sa.URL.create(
            drivername='mysql+pymysql',
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
        return 'SELECT LAST_INSERT_ID()'

    def insert_ignore_sql(self, table: str, columns: list[str], values: str) -> str:
        return f"INSERT IGNORE INTO {table} ({', '.join(columns)}) VALUES {values}"
