"""
Typed database access for the asset inventory.

All query operations can be called either as:
- Module functions: db.select(cn, sql, **params)
- Connection methods: cn.select(sql, **params)

The module functions are thin facades over the Connection methods.
"""
__version__ = '0.1.0'

from typing import Any

from assetdb.cache import Registry, shutdown
from assetdb.connection import Connection, connect
from assetdb.exceptions import ConnectionFailure, DatabaseError, NotFound
from assetdb.exceptions import QueryError, TransactionError
from assetdb.exceptions import TypeConversionError, ValidationError
from assetdb.options import DatabaseOptions
from assetdb.row import Row
from assetdb.rows import RowIterator, Rows
from assetdb.sql import indexed_name, insert_ignore_sql, multi_insert
from assetdb.statement import Statement
from assetdb.transaction import Transaction, TransactionState
from assetdb.types import Arg, SqlType, arg, nullable

transaction = Transaction


def execute(cn: Connection, sql: str, *args: Any, **kwargs: Any) -> int:
    """Execute a SQL statement and return affected row count.
    """
    return cn.execute(sql, *args, **kwargs)


delete = execute
insert = execute
update = execute


def select(cn: Connection, sql: str, *args: Any, **kwargs: Any) -> Rows:
    """Execute a query and return all rows.
    """
    return cn.select(sql, *args, **kwargs)


def select_row(cn: Connection, sql: str, *args: Any, **kwargs: Any) -> Row:
    """Execute a query and return its first row.

    Raises NotFound if the query returns no rows.
    """
    return cn.select_row(sql, *args, **kwargs)


__all__ = [
    'Arg',
    'Connection',
    'ConnectionFailure',
    'DatabaseError',
    'DatabaseOptions',
    'NotFound',
    'QueryError',
    'Registry',
    'Row',
    'RowIterator',
    'Rows',
    'SqlType',
    'Statement',
    'Transaction',
    'TransactionError',
    'TransactionState',
    'TypeConversionError',
    'ValidationError',
    'arg',
    'connect',
    'delete',
    'execute',
    'indexed_name',
    'insert',
    'insert_ignore_sql',
    'multi_insert',
    'nullable',
    'select',
    'select_row',
    'shutdown',
    'transaction',
    'update',
]
