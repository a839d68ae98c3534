"""
Database-specific exception classes.
"""
import sqlite3

import sqlalchemy as sa


class DatabaseError(Exception):
    """Base class for all assetdb errors.
    """


class NotFound(DatabaseError):
    """A single-row query matched no row.
    """


class QueryError(DatabaseError):
    """Error in query syntax or execution.

    Carries the message of the underlying driver error, which is chained as
    ``__cause__``.
    """


class ConnectionFailure(QueryError):
    """Error establishing or maintaining database connection.
    """


class TypeConversionError(DatabaseError, TypeError):
    """Error converting types between Python and database.
    """


class TransactionError(DatabaseError):
    """Illegal transaction state transition or nested transaction.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


DbConnectionError = (
    sa.exc.OperationalError,
    sa.exc.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )

DriverError = (
    sa.exc.SQLAlchemyError,
    sqlite3.Error,
    )

# Raised by DB-API drivers for parameter values they cannot bind, such as
# integers outside SQLite's signed 64-bit range
BindValueError = (
    OverflowError,
    ValueError,
    TypeError,
    )
