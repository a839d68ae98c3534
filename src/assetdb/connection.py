"""
Database connections.

This module provides:
1. The `Connection` class: one session on the target database, with
   statement preparation and one-shot query helpers
2. The `connect()` function, a shorthand for building a Connection

SQLAlchemy manages the engine and its pool; engines are shared per DSN
through the process-wide registry in `assetdb.cache`. Outside an explicit
`Transaction` every statement is committed as soon as it has run.
"""
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

import sqlalchemy as sa
from assetdb.cache import Registry
from assetdb.exceptions import BindValueError, ConnectionFailure, DbConnectionError
from assetdb.exceptions import DriverError, QueryError, TransactionError
from assetdb.options import DatabaseOptions, as_options
from assetdb.row import Row
from assetdb.rows import Rows
from assetdb.statement import Statement
from assetdb.strategy import get_strategy

if TYPE_CHECKING:
    from assetdb.transaction import Transaction

__all__ = [
    'Connection',
    'connect',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Everything a statement run produced, fetched before any commit."""
    columns: list[str]
    records: list[Sequence[Any]]
    rowcount: int


class Connection:
    """A session on the target database.

    The target is resolved once, at construction: an explicit URL, mapping
    or DatabaseOptions wins, then the ``DBURL`` environment variable, then
    the compiled-in default. The underlying SQLAlchemy connection is opened
    lazily on first use.

    Not safe for concurrent use from several threads; give each thread its
    own Connection.

    Examples
        with Connection() as cn:
            cn.execute('UPDATE t SET a = :a WHERE id = :id', a=1, id=7)
            row = cn.select_row('SELECT a FROM t WHERE id = :id', id=7)
            row.get_int32('a')
    """

    def __init__(self, options: DatabaseOptions | Mapping[str, Any] | str | None = None,
                 registry: Registry | None = None, **kw: Any) -> None:
        """Initialize a connection.

        Args:
            options: DatabaseOptions, option mapping, SQLAlchemy URL string,
                or None to resolve from the environment
            registry: Engine/statement registry (default: the shared one)
            **kw: Option overrides
        """
        self.options = as_options(options, **kw)
        self.dialect = self.options.drivername
        self.strategy = get_strategy(self.dialect)
        self.registry = registry or Registry.get_instance()
        self._sa_connection: sa.Connection | None = None
        self._transaction: Transaction | None = None
        self._closed = False
        self.calls = 0
        self.time = 0.0

    def __repr__(self) -> str:
        return f'Connection({self.url!r}, closed={self.closed})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def url(self) -> str:
        """Target URL with the password masked."""
        return self.options.to_url().render_as_string(hide_password=True)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sa_connection(self) -> sa.Connection:
        """The SQLAlchemy connection, opened on first access."""
        if self._closed:
            raise ConnectionFailure('Connection is closed')
        if self._sa_connection is None:
            engine = self.registry.get_engine(self.options)
            try:
                self._sa_connection = engine.connect()
            except DbConnectionError as exc:
                raise ConnectionFailure(f'Could not connect to {self.url}: {exc}') from exc
            logger.debug(f'Opened connection to {self.url}')
        return self._sa_connection

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None and self._transaction.active

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics

        Args:
            elapsed: Time in seconds that the query took to execute
        """
        self.time += elapsed
        self.calls += 1

    def prepare(self, sql: str) -> Statement:
        """Return a Statement for `sql`, reusing its cached compiled form."""
        return Statement(self, self.registry.get_statement(sql))

    def select_row(self, sql: str, *args: Any, **kwargs: Any) -> Row:
        """Prepare, bind and return the first row; NotFound if none."""
        return self.prepare(sql).bind(*args, **kwargs).select_row()

    def select(self, sql: str, *args: Any, **kwargs: Any) -> Rows:
        """Prepare, bind and return all rows."""
        return self.prepare(sql).bind(*args, **kwargs).select()

    def execute(self, sql: str, *args: Any, **kwargs: Any) -> int:
        """Prepare, bind and execute; return the affected row count."""
        return self.prepare(sql).bind(*args, **kwargs).execute()

    def last_insert_id(self) -> int:
        """Id generated by the most recent insert on this connection.

        Call it right after the insert, before any other statement runs on
        this connection, since a later insert replaces the value.
        """
        return self.select_row(self.strategy.last_insert_id_sql()).get_int64(0)

    def _run(self, clause: sa.TextClause) -> ExecutionResult:
        """Execute a bound clause and fetch everything it returns.

        Outside a transaction the statement is committed, or rolled back on
        failure. Driver errors, including values the driver refuses to
        bind, surface as QueryError.
        """
        conn = self.sa_connection
        try:
            result = conn.execute(clause)
            if result.returns_rows:
                outcome = ExecutionResult(list(result.keys()), result.fetchall(), result.rowcount)
            else:
                outcome = ExecutionResult([], [], result.rowcount)
        except (*DriverError, *BindValueError) as exc:
            if not self.in_transaction:
                conn.rollback()
            raise QueryError(str(exc)) from exc

        if not self.in_transaction:
            conn.commit()
        return outcome

    def _attach(self, transaction: 'Transaction') -> sa.RootTransaction:
        """Begin a SQLAlchemy transaction on behalf of `transaction`."""
        if self.in_transaction:
            raise TransactionError('Nested transactions are not supported')
        conn = self.sa_connection
        if conn.in_transaction():
            conn.commit()
        self._transaction = transaction
        return conn.begin()

    def _detach(self, transaction: 'Transaction') -> None:
        if self._transaction is transaction:
            self._transaction = None

    def close(self) -> None:
        """Close the connection, rolling back an unfinished transaction.
        """
        if self._closed:
            return
        if self.in_transaction:
            logger.warning('Closing connection with an active transaction; rolling back')
            self._transaction.rollback()
        if self._sa_connection is not None:
            self._sa_connection.close()
            self._sa_connection = None
        self._closed = True
        logger.debug(f'Connection closed: {self.calls} queries in {self.time:.2f}s (avg: {self.time/max(1,self.calls):.3f}s per query)')


def connect(options: DatabaseOptions | Mapping[str, Any] | str | None = None,
            **kw: Any) -> Connection:
    """Connect to a database.

    Args:
        options: Can be:
                - DatabaseOptions object
                - SQLAlchemy URL string
                - Dictionary of options
                - None, to use ``$DBURL`` or the default URL
        **kw: Additional keyword arguments to override options

    Returns
        Connection
    """
    return Connection(options, **kw)
