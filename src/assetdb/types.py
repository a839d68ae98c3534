"""
Typed value binding and decoding.

This module provides:
- SqlType: the scalar types the layer binds and decodes
- Arg: a named, typed, nullable parameter binding
- nullable: bind a value only when a condition holds, NULL otherwise
- decode: convert a fetched cell into a requested SqlType

Binding an unsupported Python type, or an integer outside the range of the
requested width, raises TypeConversionError as soon as the Arg is built,
before any SQL reaches the database.
"""
import decimal
import enum
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import numpy as np
import sqlalchemy as sa
from assetdb.exceptions import TypeConversionError
from assetdb.sql import indexed_name

__all__ = [
    'SqlType',
    'Arg',
    'arg',
    'nullable',
    'collect_args',
    'decode',
    'default_value',
    'resolve_sql_type',
]

logger = logging.getLogger(__name__)

SupportedValue = TypeVar('SupportedValue', str, bool, int, float)


class SqlType(enum.Enum):
    """Scalar types understood by the binding and decoding layer."""

    STRING = 'string'
    BOOL = 'bool'
    INT8 = 'int8'
    UINT8 = 'uint8'
    INT16 = 'int16'
    UINT16 = 'uint16'
    INT32 = 'int32'
    UINT32 = 'uint32'
    INT64 = 'int64'
    UINT64 = 'uint64'
    FLOAT = 'float'
    DOUBLE = 'double'

    @property
    def python_type(self) -> type:
        return _TYPE_TABLE[self].python_type

    @property
    def bounds(self) -> tuple[int, int] | None:
        return _TYPE_TABLE[self].bounds

    @property
    def is_integer(self) -> bool:
        return self.bounds is not None


@dataclass(frozen=True)
class _TypeInfo:
    python_type: type
    sa_type: type[sa.types.TypeEngine]
    bounds: tuple[int, int] | None = None


def _signed(bits: int) -> tuple[int, int]:
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def _unsigned(bits: int) -> tuple[int, int]:
    return 0, (1 << bits) - 1


_TYPE_TABLE: dict[SqlType, _TypeInfo] = {
    SqlType.STRING: _TypeInfo(str, sa.String),
    SqlType.BOOL: _TypeInfo(bool, sa.Boolean),
    SqlType.INT8: _TypeInfo(int, sa.SmallInteger, _signed(8)),
    SqlType.UINT8: _TypeInfo(int, sa.SmallInteger, _unsigned(8)),
    SqlType.INT16: _TypeInfo(int, sa.SmallInteger, _signed(16)),
    SqlType.UINT16: _TypeInfo(int, sa.Integer, _unsigned(16)),
    SqlType.INT32: _TypeInfo(int, sa.Integer, _signed(32)),
    SqlType.UINT32: _TypeInfo(int, sa.BigInteger, _unsigned(32)),
    SqlType.INT64: _TypeInfo(int, sa.BigInteger, _signed(64)),
    SqlType.UINT64: _TypeInfo(int, sa.BigInteger, _unsigned(64)),
    SqlType.FLOAT: _TypeInfo(float, sa.Float),
    SqlType.DOUBLE: _TypeInfo(float, sa.Double),
    }

# Python types accepted wherever a SqlType is expected (Row.get, Arg)
_PYTHON_TYPES: dict[type, SqlType] = {
    str: SqlType.STRING,
    bool: SqlType.BOOL,
    int: SqlType.INT64,
    float: SqlType.DOUBLE,
    }


def resolve_sql_type(type_: 'SqlType | type') -> SqlType:
    """Map a SqlType or one of str/bool/int/float to a SqlType.

    Raises TypeError for anything else.
    """
    if isinstance(type_, SqlType):
        return type_
    try:
        return _PYTHON_TYPES[type_]
    except (KeyError, TypeError):
        raise TypeError(f'Unsupported type: {type_!r}') from None


def default_value(sql_type: SqlType) -> Any:
    """The value a NULL decodes to: '', False, 0 or 0.0."""
    return sql_type.python_type()


def _unwrap_scalar(value: Any) -> Any:
    """Convert NumPy scalars to Python and NaN to None."""
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _infer_sql_type(value: Any) -> SqlType:
    if isinstance(value, bool):
        return SqlType.BOOL
    if isinstance(value, int):
        if value > SqlType.INT64.bounds[1]:
            return SqlType.UINT64
        return SqlType.INT64
    if isinstance(value, float):
        return SqlType.DOUBLE
    if isinstance(value, str):
        return SqlType.STRING
    raise TypeConversionError(f'Unsupported parameter type: {type(value).__name__}')


def _check_bounds(value: int, sql_type: SqlType) -> int:
    low, high = sql_type.bounds
    if not low <= value <= high:
        raise TypeConversionError(f'{value} out of range for {sql_type.value} [{low}, {high}]')
    return value


def _coerce(value: Any, sql_type: SqlType) -> Any:
    """Validate a non-null bind value against its SqlType.

    bool is only accepted as BOOL, never as a number.
    """
    if sql_type is SqlType.STRING:
        if isinstance(value, str):
            return value
    elif sql_type is SqlType.BOOL:
        if isinstance(value, bool):
            return value
    elif sql_type.is_integer:
        if isinstance(value, int) and not isinstance(value, bool):
            return _check_bounds(int(value), sql_type)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise TypeConversionError(f'Cannot bind {type(value).__name__} as {sql_type.value}')


@dataclass(frozen=True)
class Arg(Generic[SupportedValue]):
    """A named, typed, nullable parameter binding.

    The SqlType is inferred from the value when not given: bool, int (INT64,
    or UINT64 past the signed range), float (DOUBLE), str. None binds NULL.

    Examples
        >>> Arg('x', 42).sql_type
        <SqlType.INT64: 'int64'>
        >>> Arg('x', 42, SqlType.INT8).sql_type
        <SqlType.INT8: 'int8'>
        >>> Arg('x', None).is_null
        True
        >>> Arg('key', 'a').indexed(2).name
        'key_2'
    """
    name: str
    value: SupportedValue | None
    sql_type: SqlType | None = None

    def __post_init__(self):
        value = _unwrap_scalar(self.value)
        sql_type = self.sql_type
        if sql_type is not None:
            sql_type = resolve_sql_type(sql_type)
        if value is not None:
            sql_type = sql_type or _infer_sql_type(value)
            value = _coerce(value, sql_type)
        object.__setattr__(self, 'value', value)
        object.__setattr__(self, 'sql_type', sql_type)

    @property
    def is_null(self) -> bool:
        return self.value is None

    def indexed(self, index: int) -> 'Arg':
        """Copy of this binding with the name suffixed by ``_{index}``."""
        return Arg(indexed_name(self.name, index), self.value, self.sql_type)

    def to_bindparam(self) -> sa.BindParameter:
        """SQLAlchemy bind parameter carrying the value and its column type."""
        if self.sql_type is None:
            return sa.bindparam(self.name, None)
        return sa.bindparam(self.name, self.value, type_=_TYPE_TABLE[self.sql_type].sa_type())


def arg(name: str, value: Any, sql_type: SqlType | type | None = None) -> Arg:
    """Shorthand for `Arg`."""
    return Arg(name, value, sql_type)


def nullable(cond: bool, value: Any) -> Any:
    """Return value when cond holds, otherwise None (binds NULL).

    >>> nullable(True, 5)
    5
    >>> nullable(False, 5) is None
    True
    """
    if cond:
        return value
    return None


def collect_args(*args: Any, **kwargs: Any) -> list[Arg]:
    """Normalise the accepted binding call shapes into a list of Arg.

    Accepted:
        collect_args('name', value)
        collect_args(Arg('a', 1), Arg('b', 2))
        collect_args({'a': 1, 'b': 2})
        collect_args(a=1, b=2)
    """
    out: list[Arg] = []
    if len(args) == 2 and isinstance(args[0], str) and not isinstance(args[1], Arg):
        out.append(Arg(args[0], args[1]))
    else:
        for item in args:
            if isinstance(item, Arg):
                out.append(item)
            elif isinstance(item, Mapping):
                out.extend(Arg(name, value) for name, value in item.items())
            else:
                raise TypeError(f'Expected Arg or mapping, got {type(item).__name__}')
    out.extend(Arg(name, value) for name, value in kwargs.items())
    return out


#
# Decoding: database cell -> Python value of a requested SqlType
#

_TRUE_PREFIXES = ('1', 't', 'T', 'y', 'Y')


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode()
    if isinstance(value, bool):
        return '1' if value else '0'
    return str(value)


def _decode_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, decimal.Decimal)):
        return value != 0
    text = _as_text(value)
    return text.startswith(_TRUE_PREFIXES)


def _decode_int(value: Any) -> int:
    if isinstance(value, (bytes, bytearray, memoryview, str)):
        text = _as_text(value).strip()
        try:
            return int(text)
        except ValueError:
            return int(decimal.Decimal(text))
    return int(value)


def _decode_float(value: Any) -> float:
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = _as_text(value)
    return float(value)


_DECODERS: dict[SqlType, Callable[[Any], Any]] = {
    SqlType.STRING: _as_text,
    SqlType.BOOL: _decode_bool,
    SqlType.FLOAT: _decode_float,
    SqlType.DOUBLE: _decode_float,
    }


def decode(value: Any, sql_type: SqlType) -> Any:
    """Convert a fetched cell to `sql_type`; None decodes to the default.

    Raises TypeConversionError when the cell cannot be represented.
    """
    if value is None:
        return default_value(sql_type)
    try:
        if sql_type.is_integer:
            return _check_bounds(_decode_int(value), sql_type)
        return _DECODERS[sql_type](value)
    except (ValueError, TypeError, ArithmeticError) as exc:
        if isinstance(exc, TypeConversionError):
            raise
        raise TypeConversionError(f'Cannot decode {value!r} as {sql_type.value}: {exc}') from exc
