"""
Base strategy interface for dialect-specific behaviour.

The strategy pattern keeps the few places where SQL or connection setup
differ between backends (URL construction, engine arguments, connection
setup, last generated id, insert-or-skip statements) out of the core
Connection/Statement code.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy.pool import NullPool

if TYPE_CHECKING:
    from assetdb.options import DatabaseOptions

# Registry of dialect name -> strategy class
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy URL for this dialect from discrete options.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            URL object suitable for create_engine
        """

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.

        Pooling follows the options: NullPool unless `use_pool` is set.
        """
        if not options.use_pool:
            return {'poolclass': NullPool}
        return {
            'pool_size': options.pool_size,
            'pool_recycle': options.pool_recycle,
            'pool_timeout': options.pool_timeout,
            'max_overflow': 10,
            'pool_pre_ping': True,
            'pool_reset_on_return': 'rollback',
            }

    def configure_connection(self, dbapi_connection: Any) -> None:
        """Apply per-connection settings right after the driver connects.

        Args:
            dbapi_connection: The raw DBAPI connection
        """

    @abstractmethod
    def last_insert_id_sql(self) -> str:
        """SQL returning the last id generated by an insert in this session.
        """

    @abstractmethod
    def insert_ignore_sql(self, table: str, columns: list[str], values: str) -> str:
        """Build an INSERT that silently skips rows violating a unique key.

        Args:
            table: Target table
            columns: Column names, in order
            values: The VALUES fragment, e.g. from `multi_insert`

        Returns
            SQL text
        """

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return option field names that must be set when no URL is given."""
        return ['database']

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        if options.url:
            return
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')
