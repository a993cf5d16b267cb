#!/usr/bin/env python3
"""
sql2redis Key Encoders
======================

Encoding strategies that turn one source row into Redis writes. The
strategy is chosen once per run; each one shares the same two-step
interface:

- `encode(row, index)` is pure and returns the list of `Write`s
- `write(row, index, ctx)` applies them in order, stopping at the first
  failure, and reports each successful write

Key layouts:
    string  <table>:<index>:<column>  -> text      (one SET per column)
    list    <table>:<index>           -> [text...] (one RPUSH per row)
    hash    <table>:<index>           -> {col: text} (one HSET per row)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from core.context import ExportContext
from core.errors import UnsupportedModeError
from core.reporter import ProgressReporter
from core.rows import Row

logger = logging.getLogger(__name__)


class EncodingMode(Enum):
    """Redis value shapes for an exported row"""
    STRING = "string"
    LIST = "list"
    HASH = "hash"

    @classmethod
    def parse(cls, value: Union[str, 'EncodingMode']) -> 'EncodingMode':
        if isinstance(value, EncodingMode):
            return value
        name = str(value or '').strip().lower()
        if name == 'scalar':
            return cls.STRING
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedModeError(str(value), [m.value for m in cls] + ['scalar']) from None


@dataclass(frozen=True)
class Write:
    """One destination command"""
    command: str
    key: str
    payload: Any


class KeyEncoder(ABC):
    """Base strategy: row + position -> destination writes"""

    mode: EncodingMode = None

    def __init__(self, store, table: str = "", reporter: Optional[ProgressReporter] = None,
                 null_text: str = ""):
        self.store = store
        self.table = table
        self.reporter = reporter or ProgressReporter(enabled=False)
        self.null_text = null_text
        self.writes = 0

    def row_key(self, index: int) -> str:
        return f"{self.table}:{index}"

    @abstractmethod
    def encode(self, row: Row, index: int) -> List[Write]:
        """Writes for one row, without touching the destination"""

    def write(self, row: Row, index: int, ctx: Optional[ExportContext] = None) -> List[Write]:
        """Apply the row's writes in order; the first failure propagates"""
        ctx = ctx or ExportContext.background()
        writes = self.encode(row, index)
        for item in writes:
            ctx.check("destination write")
            self.store.apply(item, ctx)
            self.writes += 1
            self.reporter.key_written(item)
        logger.debug(f"Row {index} written as {len(writes)} write(s): {', '.join(w.key for w in writes)}")
        return writes


class ScalarEncoder(KeyEncoder):
    """One string key per column"""

    mode = EncodingMode.STRING

    def column_key(self, index: int, column: str) -> str:
        return f"{self.table}:{index}:{column}"

    def encode(self, row: Row, index: int) -> List[Write]:
        return [
            Write('set', self.column_key(index, column), value)
            for column, value in row.text_items(self.null_text)
        ]


class ListEncoder(KeyEncoder):
    """Row values appended to one list, column names dropped"""

    mode = EncodingMode.LIST

    def encode(self, row: Row, index: int) -> List[Write]:
        return [Write('rpush', self.row_key(index), row.text_values(self.null_text))]


class HashEncoder(KeyEncoder):
    """Row stored as one hash of column name to value"""

    mode = EncodingMode.HASH

    def encode(self, row: Row, index: int) -> List[Write]:
        return [Write('hset', self.row_key(index), row.as_mapping(self.null_text))]


ENCODERS: Dict[EncodingMode, Type[KeyEncoder]] = {
    EncodingMode.STRING: ScalarEncoder,
    EncodingMode.LIST: ListEncoder,
    EncodingMode.HASH: HashEncoder,
}


def get_encoder(mode: Union[str, EncodingMode], store, table: str,
                reporter: Optional[ProgressReporter] = None, null_text: str = "") -> KeyEncoder:
    """Resolve the strategy for a run"""
    encoder_cls = ENCODERS[EncodingMode.parse(mode)]
    return encoder_cls(store, table=table, reporter=reporter, null_text=null_text)
