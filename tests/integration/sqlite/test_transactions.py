"""
Transaction state machine and commit/rollback behaviour on SQLite.
"""
import assetdb as db
import pytest
from assetdb import QueryError, Transaction, TransactionError, TransactionState


def _value(cn, name):
    return cn.select_row('SELECT value FROM test_table WHERE name = :name', name=name).get_int32(0)


def test_commit_persists(sqlite_conn):
    tx = Transaction(sqlite_conn)
    assert tx.state is TransactionState.ACTIVE
    sqlite_conn.execute('UPDATE test_table SET value = :v WHERE name = :name', v=25, name='Bob')
    sqlite_conn.execute('INSERT INTO test_table (name, value) VALUES (:name, :v)', name='David', v=40)
    tx.commit()
    assert tx.state is TransactionState.COMMITTED

    with db.connect() as other:
        assert _value(other, 'Bob') == 25
        assert _value(other, 'David') == 40


def test_rollback_discards(sqlite_conn):
    tx = Transaction(sqlite_conn)
    sqlite_conn.execute('UPDATE test_table SET value = :v WHERE name = :name', v=999, name='Bob')
    sqlite_conn.execute('DELETE FROM test_table WHERE name = :name', name='Alice')
    tx.rollback()
    assert tx.state is TransactionState.ROLLED_BACK

    assert _value(sqlite_conn, 'Bob') == 20
    assert _value(sqlite_conn, 'Alice') == 10


def test_uncommitted_changes_invisible_elsewhere(sqlite_conn):
    with Transaction(sqlite_conn):
        sqlite_conn.execute("UPDATE test_table SET value = 1 WHERE name = 'Charlie'")
        assert _value(sqlite_conn, 'Charlie') == 1
        with db.connect() as other:
            assert _value(other, 'Charlie') == 30
    with db.connect() as other:
        assert _value(other, 'Charlie') == 1


def test_context_manager_commits(sqlite_conn):
    with db.transaction(sqlite_conn) as tx:
        sqlite_conn.execute("UPDATE test_table SET value = 5 WHERE name = 'Alice'")
    assert tx.state is TransactionState.COMMITTED
    assert _value(sqlite_conn, 'Alice') == 5


def test_context_manager_rolls_back_on_error(sqlite_conn):
    with pytest.raises(QueryError):
        with Transaction(sqlite_conn) as tx:
            sqlite_conn.execute("UPDATE test_table SET value = 999 WHERE name = 'Bob'")
            # unique constraint violation
            sqlite_conn.execute("INSERT INTO test_table (name, value) VALUES ('Alice', 1)")
    assert tx.state is TransactionState.ROLLED_BACK
    assert _value(sqlite_conn, 'Bob') == 20


def test_context_manager_after_explicit_rollback(sqlite_conn):
    with Transaction(sqlite_conn) as tx:
        sqlite_conn.execute("UPDATE test_table SET value = 0 WHERE name = 'Bob'")
        tx.rollback()
    assert tx.state is TransactionState.ROLLED_BACK
    assert _value(sqlite_conn, 'Bob') == 20


@pytest.mark.parametrize('finish', ['commit', 'rollback'])
def test_terminal_state_rejects_further_calls(sqlite_conn, finish):
    tx = Transaction(sqlite_conn)
    getattr(tx, finish)()
    assert tx.state.terminal
    with pytest.raises(TransactionError):
        tx.commit()
    with pytest.raises(TransactionError):
        tx.rollback()


def test_nested_transaction_rejected(sqlite_conn):
    with Transaction(sqlite_conn):
        with pytest.raises(TransactionError):
            Transaction(sqlite_conn)


def test_new_transaction_after_previous_ended(sqlite_conn):
    Transaction(sqlite_conn).commit()
    tx = Transaction(sqlite_conn)
    assert tx.active
    tx.rollback()


def test_close_rolls_back(sqlite_conn):
    tx = Transaction(sqlite_conn)
    sqlite_conn.execute("UPDATE test_table SET value = 0 WHERE name = 'Alice'")
    tx.close()
    assert tx.state is TransactionState.ROLLED_BACK
    assert _value(sqlite_conn, 'Alice') == 10
    # closing a finished transaction is a no-op
    tx.close()


def test_connection_close_rolls_back(dburl, sqlite_conn):
    tx = Transaction(sqlite_conn)
    sqlite_conn.execute("UPDATE test_table SET value = 0 WHERE name = 'Alice'")
    sqlite_conn.close()
    assert tx.state is TransactionState.ROLLED_BACK
    with db.connect() as other:
        assert _value(other, 'Alice') == 10


def test_failed_statement_keeps_transaction_open(sqlite_conn):
    tx = Transaction(sqlite_conn)
    sqlite_conn.execute("UPDATE test_table SET value = 1 WHERE name = 'Bob'")
    with pytest.raises(QueryError):
        sqlite_conn.execute('SELECT * FROM no_such_table')
    assert tx.active
    tx.commit()
    assert _value(sqlite_conn, 'Bob') == 1


def test_last_insert_id_inside_transaction(sqlite_conn):
    with Transaction(sqlite_conn):
        sqlite_conn.execute("INSERT INTO test_table (name, value) VALUES ('Dan', 1)")
        assert sqlite_conn.last_insert_id() == 4
