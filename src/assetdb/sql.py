"""
SQL text helpers.

This module provides pure string-building utilities, none of which touch a
database:
- indexed placeholder names for bulk binding (``key_0``, ``key_1``, ...)
- the VALUES fragment of a multi-row INSERT
- dialect-specific "insert, skipping duplicates" statements
"""
import logging
from collections.abc import Iterable

from assetdb.strategy import get_strategy
from more_itertools import collapse

__all__ = [
    'indexed_name',
    'multi_insert',
    'insert_ignore_sql',
]

logger = logging.getLogger(__name__)


def indexed_name(name: str, index: int) -> str:
    """Suffix a placeholder name with a row index.

    >>> indexed_name('key', 3)
    'key_3'
    """
    return f'{name}_{index}'


def multi_insert(columns: Iterable[str], count: int) -> str:
    """Build the VALUES fragment for `count` rows of named placeholders.

    Per-row parameters are bound with `Statement.bind_multi` or
    `Arg.indexed` using the same row index.

    >>> multi_insert(['k', 'v'], 3)
    '(:k_0, :v_0), (:k_1, :v_1), (:k_2, :v_2)'
    >>> multi_insert(['k'], 0)
    ''
    """
    columns = list(collapse(columns))
    rows = []
    for i in range(count):
        placeholders = ', '.join(f':{indexed_name(col, i)}' for col in columns)
        rows.append(f'({placeholders})')
    return ', '.join(rows)


def insert_ignore_sql(dialect: str, table: str, columns: Iterable[str], values: str) -> str:
    """Build an INSERT that skips rows colliding with a unique key.

    Args:
        dialect: Database dialect name ('sqlite', 'postgresql', 'mysql')
        table: Target table
        columns: Column names
        values: VALUES fragment, typically from `multi_insert`

    Returns
        SQL text for the dialect
    """
    return get_strategy(dialect).insert_ignore_sql(table, list(collapse(columns)), values)
