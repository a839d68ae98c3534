"""
Transaction handling for database operations.
"""
import enum
import logging
from typing import TYPE_CHECKING, Any, Self

from assetdb.exceptions import DriverError, QueryError, TransactionError

if TYPE_CHECKING:
    from assetdb.connection import Connection

__all__ = [
    'Transaction',
    'TransactionState',
]

logger = logging.getLogger(__name__)


class TransactionState(enum.Enum):
    CREATED = 'created'
    ACTIVE = 'active'
    COMMITTED = 'committed'
    ROLLED_BACK = 'rolled back'

    @property
    def terminal(self) -> bool:
        return self in {TransactionState.COMMITTED, TransactionState.ROLLED_BACK}


class Transaction:
    """A unit of work on one Connection.

    The transaction begins when it is constructed. Exactly one of `commit()`
    or `rollback()` ends it; any call after that raises TransactionError, as
    does opening a second transaction on a connection whose first one is
    still active.

    A transaction that is never ended is rolled back by `close()`, by
    closing its Connection, or by leaving a ``with`` block through an
    exception. Leaving a ``with`` block normally commits.

    Examples
        with Transaction(cn):
            cn.execute('DELETE FROM t WHERE id = :id', id=1)
            cn.execute('UPDATE u SET n = n - 1')

        tx = Transaction(cn)
        try:
            cn.execute(...)
            tx.commit()
        except DatabaseError:
            tx.rollback()
            raise
    """

    def __init__(self, connection: 'Connection') -> None:
        self.connection = connection
        self.state = TransactionState.CREATED
        self._sa_transaction = connection._attach(self)
        self.state = TransactionState.ACTIVE
        logger.debug(f'Started transaction for connection {id(connection)}')

    def __repr__(self) -> str:
        return f'Transaction(state={self.state.value!r})'

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if not self.active:
            return
        if exc_type is not None:
            logger.warning('Rolling back the current transaction')
            self.rollback()
        else:
            self.commit()

    @property
    def active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def _finish(self, state: TransactionState) -> None:
        if not self.active:
            raise TransactionError(f'Cannot {"commit" if state is TransactionState.COMMITTED else "roll back"}'
                                   f' a transaction that is {self.state.value}')
        try:
            if state is TransactionState.COMMITTED:
                self._sa_transaction.commit()
            else:
                self._sa_transaction.rollback()
        except DriverError as exc:
            # the database discards a transaction whose commit failed
            self.state = TransactionState.ROLLED_BACK
            self.connection._detach(self)
            raise QueryError(str(exc)) from exc
        self.state = state
        self.connection._detach(self)
        logger.debug(f'Transaction {state.value} for connection {id(self.connection)}')

    def commit(self) -> None:
        """Persist every statement run since the transaction began."""
        self._finish(TransactionState.COMMITTED)

    def rollback(self) -> None:
        """Discard every statement run since the transaction began."""
        self._finish(TransactionState.ROLLED_BACK)

    def close(self) -> None:
        """Roll back if still active; no-op otherwise."""
        if self.active:
            logger.warning('Transaction closed without commit; rolling back')
            self.rollback()
