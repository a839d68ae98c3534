"""Unit tests for Row typed accessors."""
import pytest
from assetdb.exceptions import TypeConversionError
from assetdb.row import Row
from assetdb.types import SqlType


@pytest.fixture
def row():
    return Row.from_mapping({
        'id': 7,
        'name': 'ups-1',
        'enabled': 1,
        'ratio': 0.5,
        'missing': None,
        'big': 2**40,
    })


class TestAccess:

    def test_by_name_and_position(self, row):
        assert row['name'] == 'ups-1'
        assert row[1] == 'ups-1'
        assert row[-1] == 2**40

    def test_unknown_column(self, row):
        with pytest.raises(KeyError, match='nope'):
            row['nope']
        with pytest.raises(IndexError):
            row[6]
        with pytest.raises(IndexError):
            row.get_int32(-7)

    def test_columns_and_dict(self, row):
        assert row.columns == ['id', 'name', 'enabled', 'ratio', 'missing', 'big']
        assert row.to_dict()['id'] == 7
        assert len(row) == 6
        assert 'ratio' in row
        assert 'nope' not in row

    def test_equality(self, row):
        same = Row.from_mapping(row.to_dict())
        assert row == same
        assert hash(row) == hash(same)


class TestTypedGetters:

    def test_values(self, row):
        assert row.get_int32('id') == 7
        assert row.get_uint8(0) == 7
        assert row.get_string('name') == 'ups-1'
        assert row.get_bool('enabled') is True
        assert row.get_double('ratio') == 0.5
        assert row.get_float('ratio') == 0.5
        assert row.get_int64('big') == 2**40
        assert row.get_uint64('big') == 2**40

    def test_string_of_number(self, row):
        assert row.get_string('id') == '7'
        assert row.get('id') == '7'

    def test_null_returns_defaults(self, row):
        assert row.is_null('missing')
        assert not row.is_null('id')
        assert row.get_string('missing') == ''
        assert row.get_bool('missing') is False
        assert row.get_int8('missing') == 0
        assert row.get_uint16('missing') == 0
        assert row.get_double('missing') == 0.0
        assert row.get('missing') == ''

    def test_generic_get_hides_null(self):
        """NULL and empty string read alike; only is_null tells them apart"""
        row = Row.from_mapping({'null': None, 'empty': ''})
        assert row.get('null') == row.get('empty') == ''
        assert row.get('null', int) == 0
        assert row.is_null('null')
        assert not row.is_null('empty')

    def test_generic_get(self, row):
        assert row.get('id', int) == 7
        assert row.get('enabled', bool) is True
        assert row.get('ratio', float) == 0.5
        assert row.get('id', SqlType.UINT32) == 7

    def test_generic_get_unsupported_type(self, row):
        with pytest.raises(TypeError):
            row.get('id', bytes)

    def test_narrow_width_overflow(self, row):
        with pytest.raises(TypeConversionError):
            row.get_int32('big')
        with pytest.raises(TypeConversionError):
            row.get_int16('big')
