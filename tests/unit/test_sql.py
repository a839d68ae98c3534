"""Unit tests for SQL text helpers.

Tests the public API:
- indexed_name(name, index) - Placeholder names for bulk binding
- multi_insert(columns, count) - VALUES fragment of a multi-row INSERT
- insert_ignore_sql(dialect, table, columns, values) - Duplicate-skipping INSERT
"""
import pytest
from assetdb.sql import indexed_name, insert_ignore_sql, multi_insert


def test_indexed_name():
    assert indexed_name('key', 0) == 'key_0'
    assert indexed_name('value', 12) == 'value_12'


class TestMultiInsert:

    def test_three_rows(self):
        assert multi_insert(['k', 'v'], 3) == '(:k_0, :v_0), (:k_1, :v_1), (:k_2, :v_2)'

    def test_single_column(self):
        assert multi_insert(['id'], 2) == '(:id_0), (:id_1)'

    def test_no_rows(self):
        assert multi_insert(['k', 'v'], 0) == ''

    def test_nested_columns_flattened(self):
        assert multi_insert([['a', 'b'], 'c'], 1) == '(:a_0, :b_0, :c_0)'

    def test_generator_columns(self):
        assert multi_insert((c for c in ('x', 'y')), 1) == '(:x_0, :y_0)'


class TestInsertIgnore:

    values = '(:k_0, :v_0)'

    @pytest.mark.parametrize(('dialect', 'expected'), [
        ('sqlite', 'INSERT OR IGNORE INTO t (k, v) VALUES (:k_0, :v_0)'),
        ('mysql', 'INSERT IGNORE INTO t (k, v) VALUES (:k_0, :v_0)'),
        ('postgresql', 'INSERT INTO t (k, v) VALUES (:k_0, :v_0) ON CONFLICT DO NOTHING'),
    ])
    def test_dialects(self, dialect, expected):
        assert insert_ignore_sql(dialect, 't', ['k', 'v'], self.values) == expected

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match='Unsupported dialect'):
            insert_ignore_sql('oracle', 't', ['k'], '(:k_0)')
