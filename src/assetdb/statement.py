"""
Prepared statements with named, typed parameter binding.

A Statement is obtained from `Connection.prepare(sql)`. Placeholders use the
``:name`` syntax. Bindings accumulate on the statement until it runs:

    st = cn.prepare('UPDATE t SET a = :a WHERE id = :id')
    st.bind('a', 5).bind(arg('id', 7, SqlType.INT32)).execute()

Running a statement with a placeholder left unbound raises QueryError before
anything is sent to the database.
"""
import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import TYPE_CHECKING, Any, Self

import sqlalchemy as sa
from assetdb.exceptions import NotFound, QueryError
from assetdb.row import Row
from assetdb.rows import Rows
from assetdb.types import Arg, collect_args

if TYPE_CHECKING:
    from assetdb.connection import Connection

__all__ = [
    'CompiledSql',
    'Statement',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledSql:
    """SQL text with its parsed ``text()`` clause and placeholder names.

    Immutable and shared across Connections through the statement cache.
    """
    sql: str
    clause: sa.TextClause
    placeholders: frozenset[str]

    @classmethod
    def compile(cls, sql: str) -> 'CompiledSql':
        clause = sa.text(sql)
        return cls(sql, clause, frozenset(clause.compile().binds))


def dumpsql(func):
    """Decorator for logging SQL, bound parameter names and timing."""
    @wraps(func)
    def wrapper(self, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{self.sql}\nargs: {sorted(self._args)}')
        try:
            return func(self, *args, **kwargs)
        except NotFound:
            raise
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{self.sql}\nargs: {self.params}')
            raise
        finally:
            elapsed = time.time() - start
            self._connection.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Statement:
    """A cached, parameterized SQL command bound to one Connection.

    Bind methods return the statement itself so calls chain. Rebinding a
    name replaces the earlier value. Names not used by the SQL are ignored.
    """

    def __init__(self, connection: 'Connection', compiled: CompiledSql) -> None:
        self._connection = connection
        self._compiled = compiled
        self._args: dict[str, Arg] = {}

    def __repr__(self) -> str:
        return f'Statement({self.sql!r}, bound={sorted(self._args)})'

    @property
    def sql(self) -> str:
        return self._compiled.sql

    @property
    def placeholders(self) -> frozenset[str]:
        """Names of the placeholders the SQL requires."""
        return self._compiled.placeholders

    @property
    def params(self) -> dict[str, Any]:
        """Currently bound values by name."""
        return {name: a.value for name, a in self._args.items()}

    def bind(self, *args: Any, **kwargs: Any) -> Self:
        """Attach one or more named parameters.

        Accepts ``bind(name, value)``, ``bind(Arg, Arg, ...)``,
        ``bind({'name': value})`` and ``bind(name=value)``, applied left to
        right.
        """
        for a in collect_args(*args, **kwargs):
            self._args[a.name] = a
        return self

    def set_null(self, name: str) -> Self:
        """Bind SQL NULL to `name`."""
        self._args[name] = Arg(name, None)
        return self

    def bind_multi(self, index: int, *args: Any, **kwargs: Any) -> Self:
        """Bind parameters for row `index` of a multi-row statement.

        Each name gets the ``_{index}`` suffix, matching `multi_insert`.
        """
        for a in collect_args(*args, **kwargs):
            a = a.indexed(index)
            self._args[a.name] = a
        return self

    def clear(self) -> Self:
        """Forget all bindings."""
        self._args.clear()
        return self

    def _bound_clause(self) -> sa.TextClause:
        missing = self.placeholders - self._args.keys()
        if missing:
            raise QueryError(f"Missing binding for placeholder(s): {', '.join(sorted(missing))}")
        unused = self._args.keys() - self.placeholders
        if unused:
            logger.debug(f'Ignoring bindings not used by the statement: {sorted(unused)}')
        params = [a.to_bindparam() for name, a in self._args.items() if name in self.placeholders]
        return self._compiled.clause.bindparams(*params)

    @dumpsql
    def execute(self) -> int:
        """Run an INSERT/UPDATE/DELETE and return the affected row count."""
        result = self._connection._run(self._bound_clause())
        logger.debug(f'Statement affected {result.rowcount} rows')
        return result.rowcount

    def _select(self) -> Rows:
        result = self._connection._run(self._bound_clause())
        logger.debug(f'Query returned {len(result.records)} rows')
        return Rows(result.columns, result.records)

    @dumpsql
    def select(self) -> Rows:
        """Run a query and return all its rows (possibly none)."""
        return self._select()

    @dumpsql
    def select_row(self) -> Row:
        """Run a query and return its first row.

        Raises NotFound when the query returns no row. Extra rows are
        discarded.
        """
        rows = self._select()
        if rows.empty():
            raise NotFound(f'No row returned by query: {self.sql}')
        if rows.size() > 1:
            logger.debug(f'select_row discarding {rows.size() - 1} extra rows')
        return rows[0]
