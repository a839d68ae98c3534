"""
Dialect strategies, looked up by SQLAlchemy backend name.

Importing this package registers the SQLite, PostgreSQL and MySQL
strategies.
"""
from functools import lru_cache

from assetdb.strategy.base import _STRATEGY_REGISTRY
from assetdb.strategy.base import DatabaseStrategy as DatabaseStrategy
from assetdb.strategy.base import register_strategy as register_strategy
from assetdb.strategy.mysql import MySQLStrategy as MySQLStrategy
from assetdb.strategy.postgres import PostgresStrategy as PostgresStrategy
from assetdb.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def supported_dialects() -> tuple[str, ...]:
    return tuple(sorted(_STRATEGY_REGISTRY))


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Registered strategy class for `dialect`.

    Raises ValueError naming the supported dialects when none is registered.
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {list(supported_dialects())}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for `dialect`; strategies hold no state."""
    return get_strategy_class(dialect)()
