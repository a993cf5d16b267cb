#!/usr/bin/env python3
"""
sql2redis Row Stream
====================

Generic, schema-less access to a source table. A `RowStream` issues a
single `SELECT * FROM <table>` and yields `Row` values one at a time,
pulling batches from the driver cursor as they are consumed. Values are
kept as the driver returned them; `to_text()` is the only conversion and
is applied by the encoders.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from core.context import ExportContext
from core.database_manager import DatabaseAdapter, sanitize_error
from core.errors import QueryError, ScanError, StreamError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


# Destination payload: text, or the untouched bytes of a non UTF-8 value
Value = Union[str, bytes]


def to_text(value: Any, null_text: str = "") -> Value:
    """
    Materialize a raw column value for the destination

    NULL becomes `null_text` (empty by default, so it cannot be told apart
    from an empty string). Binary payloads are decoded when they are valid
    UTF-8 and passed through as bytes otherwise, so BLOB columns reach
    Redis byte for byte.
    """
    if value is None:
        return null_text
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError:
            return raw
    return str(value)


@dataclass(frozen=True)
class Row:
    """One source record as ordered (column, value) pairs"""
    columns: Tuple[str, ...]
    values: Tuple[Any, ...]

    def __post_init__(self):
        if len(self.columns) != len(self.values):
            raise ScanError(
                f"Row has {len(self.values)} values for {len(self.columns)} columns",
                {'columns': list(self.columns)}
            )

    def __len__(self) -> int:
        return len(self.columns)

    def items(self) -> List[Tuple[str, Any]]:
        return list(zip(self.columns, self.values))

    def text_values(self, null_text: str = "") -> List[Value]:
        return [to_text(value, null_text) for value in self.values]

    def text_items(self, null_text: str = "") -> List[Tuple[str, Value]]:
        return list(zip(self.columns, self.text_values(null_text)))

    def as_mapping(self, null_text: str = "") -> Dict[str, Value]:
        """Column name to text; a repeated column name keeps its last value"""
        return dict(self.text_items(null_text))


class RowStream:
    """Forward-only, single pass reader over one table"""

    def __init__(self, adapter: DatabaseAdapter, table: str,
                 ctx: Optional[ExportContext] = None, batch_size: int = DEFAULT_BATCH_SIZE):
        if not table:
            raise QueryError("Table name is required")
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.adapter = adapter
        self.table = table
        self.ctx = ctx or ExportContext.background()
        self.batch_size = batch_size
        self.sql = f"SELECT * FROM {adapter.quote_identifier(table)}"

        self._cursor = None
        self._columns: Optional[Tuple[str, ...]] = None
        self._pending: List[Sequence[Any]] = []
        self._consumed = False
        self.rows_read = 0

    @property
    def columns(self) -> Tuple[str, ...]:
        if self._columns is None:
            raise StreamError("Stream is not open")
        return self._columns

    def open(self) -> 'RowStream':
        """Execute the table read and fetch the first batch"""
        if self._cursor is not None:
            return self
        self.ctx.check("table read")
        logger.info(f"Reading table {self.table}: {self.sql}")
        try:
            self._cursor = self.adapter.stream_cursor()
            self._cursor.execute(self.sql)
            # named cursors only describe their result after the first fetch
            self._pending = list(self._cursor.fetchmany(self.batch_size))
            self._columns = tuple(desc[0] for desc in self._cursor.description or ())
        except self.adapter.driver_error as e:
            self.close()
            logger.error(f"Query failed for table {self.table}: {sanitize_error(e)}")
            raise QueryError(f"Failed to read table {self.table}: {sanitize_error(e)}",
                             {'table': self.table, 'sql': self.sql}) from e
        if not self._columns:
            self.close()
            raise QueryError(f"Query on {self.table} returned no result set", {'table': self.table})
        return self

    def _fetch(self) -> List[Sequence[Any]]:
        self.ctx.check("row fetch")
        if self._cursor is None:
            raise StreamError(f"Row stream for {self.table} was closed while being read")
        try:
            return list(self._cursor.fetchmany(self.batch_size))
        except self.adapter.driver_error as e:
            logger.error(f"Cursor failed after {self.rows_read} rows of {self.table}: {sanitize_error(e)}")
            raise StreamError(f"Cursor error while reading {self.table}: {sanitize_error(e)}",
                              {'table': self.table, 'rows_read': self.rows_read}) from e

    def __iter__(self) -> Iterator[Row]:
        if self._consumed:
            raise StreamError(f"Row stream for {self.table} is single pass and was already consumed")
        self._consumed = True
        self.open()

        batch = self._pending
        self._pending = []
        while batch:
            for record in batch:
                row = Row(self._columns, tuple(record))
                self.rows_read += 1
                yield row
            batch = self._fetch()
        logger.debug(f"Row stream for {self.table} exhausted after {self.rows_read} rows")

    def close(self):
        if self._cursor is not None:
            try:
                self._cursor.close()
            except self.adapter.driver_error as e:
                logger.warning(f"Error closing cursor for {self.table}: {sanitize_error(e)}")
            finally:
                self._cursor = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
