"""Result sets and their random-access iterator.

Rows holds the fetched records of one query and materialises a `Row` per
offset only when it is asked for. `RowIterator` walks one Rows instance by
offset; it keeps the row at its current offset so repeated dereferencing
while the offset stays put costs nothing.
"""
import logging
from collections.abc import Iterator, Sequence
from typing import Any, Self, overload

import pandas as pd
from assetdb.row import Row

logger = logging.getLogger(__name__)


class Rows(Sequence[Row]):
    """An ordered, indexable, iterable sequence of rows.

    Examples
        >>> rows = Rows(['id', 'name'], [(1, 'ups'), (2, 'epdu')])
        >>> rows.size(), rows.empty()
        (2, False)
        >>> rows[1].get_string('name')
        'epdu'
        >>> [row.get_int32('id') for row in rows]
        [1, 2]
    """

    def __init__(self, columns: Sequence[str], records: Sequence[Sequence[Any]]) -> None:
        """Initialize from column names and buffered records.

        Args:
            columns: Column names in result order
            records: One tuple of cell values per row
        """
        self._columns = list(columns)
        self._records = records
        # first occurrence wins for duplicate column names
        self._index: dict[str, int] = {}
        for i, name in enumerate(self._columns):
            self._index.setdefault(name, i)

    def __repr__(self) -> str:
        return f'Rows(columns={self._columns!r}, size={self.size()})'

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    def size(self) -> int:
        return len(self._records)

    def empty(self) -> bool:
        return not self._records

    def __len__(self) -> int:
        return self.size()

    def __bool__(self) -> bool:
        return not self.empty()

    def row(self, offset: int) -> Row:
        """Materialise the row at a non-negative `offset`."""
        return Row(self._index, self._records[offset])

    @overload
    def __getitem__(self, offset: int) -> Row: ...

    @overload
    def __getitem__(self, offset: slice) -> 'Rows': ...

    def __getitem__(self, offset):
        if isinstance(offset, slice):
            return Rows(self._columns, self._records[offset])
        size = self.size()
        if offset < 0:
            offset += size
        if not 0 <= offset < size:
            raise IndexError(f'Row offset out of range ({size} rows)')
        return self.row(offset)

    def __iter__(self) -> 'RowIterator':
        return self.begin()

    def begin(self) -> 'RowIterator':
        """Iterator positioned on the first row."""
        return RowIterator(self, 0)

    def end(self) -> 'RowIterator':
        """Iterator positioned one past the last row."""
        return RowIterator(self, self.size())

    def to_dicts(self) -> list[dict[str, Any]]:
        return [row.to_dict() for row in self]

    def to_dataframe(self) -> pd.DataFrame:
        """Load the rows into a pandas DataFrame.

        Column names are kept for empty results.
        """
        if self.empty():
            return pd.DataFrame(columns=self._columns)
        return pd.DataFrame.from_records([tuple(r) for r in self._records], columns=self._columns)


class RowIterator(Iterator[Row]):
    """Random-access iterator over one Rows instance.

    Two iterators compare equal when their offsets are equal. Comparing
    iterators of different Rows instances is meaningless and not checked.

    As a Python iterator, `next()` yields the row at the current offset and
    then advances.
    """

    __slots__ = ('_rows', '_offset', '_current', '_current_offset')

    def __init__(self, rows: Rows, offset: int = 0) -> None:
        self._rows = rows
        self._offset = offset
        self._current: Row | None = None
        self._current_offset: int | None = None

    def __repr__(self) -> str:
        return f'RowIterator(offset={self._offset}, size={self._rows.size()})'

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def current(self) -> Row:
        """Row at the current offset.

        Raises IndexError when the iterator is outside the rows.
        """
        if self._current_offset != self._offset:
            if not 0 <= self._offset < self._rows.size():
                raise IndexError(f'Iterator offset {self._offset} outside rows')
            self._current = self._rows.row(self._offset)
            self._current_offset = self._offset
        return self._current

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> Row:
        if self._offset >= self._rows.size():
            raise StopIteration
        row = self.current
        self._offset += 1
        return row

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowIterator):
            return NotImplemented
        return self._offset == other._offset

    def __hash__(self) -> int:
        return hash(self._offset)

    def __lt__(self, other: 'RowIterator') -> bool:
        return self._offset < other._offset

    def __iadd__(self, n: int) -> Self:
        self._offset += n
        return self

    def __isub__(self, n: int) -> Self:
        self._offset -= n
        return self

    def __add__(self, n: int) -> 'RowIterator':
        return RowIterator(self._rows, self._offset + n)

    @overload
    def __sub__(self, other: int) -> 'RowIterator': ...

    @overload
    def __sub__(self, other: 'RowIterator') -> int: ...

    def __sub__(self, other):
        """Iterator minus n is an iterator; iterator minus iterator is a distance."""
        if isinstance(other, RowIterator):
            return self._offset - other._offset
        return RowIterator(self._rows, self._offset - other)

    def advance(self, n: int = 1) -> Self:
        """Move by `n` rows (negative moves back)."""
        self._offset += n
        return self
