"""Typed accessors over one fetched record.

Columns are addressed by name or by zero-based position. Every typed getter
turns SQL NULL into the type's default value (``''``, ``False``, ``0``,
``0.0``) instead of failing, and so does the untyped `get(col)`, which reads a
NULL cell as ``''``. Only `is_null` tells a NULL apart from a default.
"""
from collections.abc import Mapping, Sequence
from typing import Any, overload

from assetdb.types import SqlType, decode, resolve_sql_type

Column = str | int


class Row:
    """A read-only record fetched by a query.

    Rows share the column index of the result they came from and may be
    kept after the result set is gone.
    """

    __slots__ = ('_index', '_values')

    def __init__(self, index: Mapping[str, int], values: Sequence[Any]) -> None:
        """Initialize from a column-name index and the raw values.

        Args:
            index: Column name -> position, shared by all rows of a result
            values: Cell values in column order
        """
        self._index = index
        self._values = tuple(values)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Row':
        """Build a standalone row from a name -> value mapping."""
        return cls({name: i for i, name in enumerate(data)}, list(data.values()))

    def __repr__(self) -> str:
        return f'Row({self.to_dict()!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.columns == other.columns and self._values == other._values

    def __hash__(self) -> int:
        return hash((tuple(self.columns), self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, col: Column) -> Any:
        """Raw cell value, None for NULL."""
        return self._values[self._position(col)]

    def __contains__(self, col: object) -> bool:
        return col in self._index

    @property
    def columns(self) -> list[str]:
        """Column names in result order."""
        return sorted(self._index, key=self._index.__getitem__)

    def to_dict(self) -> dict[str, Any]:
        return dict(zip(self.columns, self._values))

    def _position(self, col: Column) -> int:
        if isinstance(col, int) and not isinstance(col, bool):
            if not -len(self._values) <= col < len(self._values):
                raise IndexError(f'Column index {col} out of range ({len(self._values)} columns)')
            return col
        try:
            return self._index[col]
        except KeyError:
            raise KeyError(f'No column named {col!r}; available: {self.columns}') from None

    def is_null(self, col: Column) -> bool:
        """True when the column holds SQL NULL."""
        return self[col] is None

    def _typed(self, col: Column, sql_type: SqlType) -> Any:
        return decode(self[col], sql_type)

    @overload
    def get(self, col: Column) -> str: ...

    @overload
    def get(self, col: Column, type_: type[str]) -> str: ...

    @overload
    def get(self, col: Column, type_: type[bool]) -> bool: ...

    @overload
    def get(self, col: Column, type_: type[int]) -> int: ...

    @overload
    def get(self, col: Column, type_: type[float]) -> float: ...

    @overload
    def get(self, col: Column, type_: SqlType) -> Any: ...

    def get(self, col, type_=None):
        """Read a column.

        Without `type_` the value is returned as a string, ``''`` for NULL.
        With `type_` (a SqlType, or one of str, bool, int, float) the value
        is decoded to that type, and NULL yields the type's default.

        Raises TypeError for an unsupported `type_`.
        """
        if type_ is None:
            return self.get_string(col)
        return self._typed(col, resolve_sql_type(type_))

    def get_string(self, col: Column) -> str:
        return self._typed(col, SqlType.STRING)

    def get_bool(self, col: Column) -> bool:
        return self._typed(col, SqlType.BOOL)

    def get_int8(self, col: Column) -> int:
        return self._typed(col, SqlType.INT8)

    def get_uint8(self, col: Column) -> int:
        return self._typed(col, SqlType.UINT8)

    def get_int16(self, col: Column) -> int:
        return self._typed(col, SqlType.INT16)

    def get_uint16(self, col: Column) -> int:
        return self._typed(col, SqlType.UINT16)

    def get_int32(self, col: Column) -> int:
        return self._typed(col, SqlType.INT32)

    def get_uint32(self, col: Column) -> int:
        return self._typed(col, SqlType.UINT32)

    def get_int64(self, col: Column) -> int:
        return self._typed(col, SqlType.INT64)

    def get_uint64(self, col: Column) -> int:
        return self._typed(col, SqlType.UINT64)

    def get_float(self, col: Column) -> float:
        return self._typed(col, SqlType.FLOAT)

    def get_double(self, col: Column) -> float:
        return self._typed(col, SqlType.DOUBLE)
