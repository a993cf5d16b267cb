#!/usr/bin/env python3
"""
sql2redis Table Exporter
========================

Runs one export: source connection, destination handle, row stream and
the per-row encoding loop, in a single sequential pass.

State machine (shared with the migration pipeline):

    IDLE -> SOURCE_CONNECTED -> DESTINATION_CONNECTED -> STREAMING -> CLOSED
                 \\__________________\\_______________________\\____-> FAILED

The row stream, the destination client and the source connection are
released on every exit path. The first error aborts the run and is
re-raised to the caller; keys written before it stay in Redis.

Usage:
    result = export_table(
        'postgres',
        SourceParams(user='app', password='secret', database='shop'),
        table='users',
        redis_address='localhost:6379',
        mode='hash',
    )
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, TextIO, Union

from core.context import ExportContext
from core.database_manager import BackendType, SourceParams, open_source
from core.encoders import EncodingMode, KeyEncoder, get_encoder
from core.errors import ExportError
from core.reporter import ProgressReporter
from core.rows import DEFAULT_BATCH_SIZE, RowStream
from extensions.plugins.redis_adapter import open_destination

logger = logging.getLogger(__name__)


class ExportState(Enum):
    """Lifecycle of one export run"""
    IDLE = "idle"
    SOURCE_CONNECTED = "source_connected"
    DESTINATION_CONNECTED = "destination_connected"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class ExportResult:
    """Outcome of a successful run"""
    table: str
    mode: str
    rows: int = 0
    writes: int = 0
    state: ExportState = ExportState.IDLE
    elapsed: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'table': self.table,
            'mode': self.mode,
            'rows': self.rows,
            'writes': self.writes,
            'state': self.state.value,
            'elapsed': self.elapsed,
        }


class ExportPipeline(ABC):
    """Shared driver for the positional export and the migration"""

    banner = "Copying Complete!"
    mode_name = ""

    def __init__(self, source_kind: Union[str, BackendType], source_params: SourceParams, table: str,
                 redis_address: str, redis_password: Optional[str] = None, verbose: bool = False,
                 batch_size: int = DEFAULT_BATCH_SIZE, null_text: str = "",
                 output: Optional[TextIO] = None):
        self.source_kind = source_kind
        self.source_params = source_params
        self.table = table
        self.redis_address = redis_address
        self.redis_password = redis_password
        self.verbose = verbose
        self.batch_size = batch_size
        self.null_text = null_text
        self.output = output
        self.state = ExportState.IDLE

    def make_reporter(self) -> ProgressReporter:
        return ProgressReporter(enabled=self.verbose, stream=self.output)

    @abstractmethod
    def build_encoder(self, store, reporter: ProgressReporter) -> KeyEncoder:
        """Encoding strategy for one run"""

    def _transition(self, state: ExportState):
        logger.debug(f"Export {self.table}: {self.state.value} -> {state.value}")
        self.state = state

    def _release(self, resource, name: str):
        if resource is None:
            return
        try:
            resource.close()
        except Exception as e:
            logger.warning(f"Error releasing {name}: {e}")

    def run(self, ctx: Optional[ExportContext] = None) -> ExportResult:
        """
        Execute the export

        Returns:
            ExportResult once the stream is exhausted without error

        Raises:
            ExportError: the first failure at any stage
        """
        ctx = ctx or ExportContext.background()
        # fail on an unknown kind before any connection is attempted
        backend = BackendType.resolve(self.source_kind)

        start_time = time.time()
        result = ExportResult(table=self.table, mode=self.mode_name)
        reporter = self.make_reporter()
        source = store = stream = None
        self.state = ExportState.IDLE

        logger.info(f"Starting {self.mode_name} export: {backend.value}:{self.table} -> {self.redis_address}")
        try:
            source = open_source(backend, self.source_params, ctx)
            self._transition(ExportState.SOURCE_CONNECTED)

            store = open_destination(self.redis_address, self.redis_password, ctx)
            self._transition(ExportState.DESTINATION_CONNECTED)

            encoder = self.build_encoder(store, reporter)
            stream = RowStream(source, self.table, ctx=ctx, batch_size=self.batch_size).open()
            self._transition(ExportState.STREAMING)

            reporter.header()
            for index, row in enumerate(stream):
                encoder.write(row, index, ctx)
                result.rows += 1
                result.writes = encoder.writes
        except ExportError as e:
            self._transition(ExportState.FAILED)
            logger.error(f"Export of {self.table} failed after {result.rows} rows: {e.message}")
            raise
        except Exception:
            self._transition(ExportState.FAILED)
            logger.exception(f"Unexpected error exporting {self.table}")
            raise
        finally:
            self._release(stream, "row stream")
            self._release(store, "destination")
            self._release(source, "source")
            result.elapsed = time.time() - start_time

        self._transition(ExportState.CLOSED)
        result.state = self.state
        reporter.banner(self.banner)
        logger.info(f"Exported {result.rows} rows of {self.table} as {result.writes} writes "
                    f"in {result.elapsed:.2f}s")
        return result


class TableExporter(ExportPipeline):
    """Positional export: <table>:<index>[:<column>] keys"""

    def __init__(self, source_kind: Union[str, BackendType], source_params: SourceParams, table: str,
                 redis_address: str, redis_password: Optional[str] = None,
                 mode: Union[str, EncodingMode] = EncodingMode.HASH, **kwargs):
        super().__init__(source_kind, source_params, table, redis_address, redis_password, **kwargs)
        # resolved once per run, never per row
        self.mode = EncodingMode.parse(mode)
        self.mode_name = self.mode.value

    def build_encoder(self, store, reporter: ProgressReporter) -> KeyEncoder:
        return get_encoder(self.mode, store, self.table, reporter=reporter, null_text=self.null_text)


def export_table(source_kind: Union[str, BackendType], source_params: SourceParams, table: str,
                 redis_address: str, redis_password: Optional[str] = None,
                 mode: Union[str, EncodingMode] = EncodingMode.HASH, verbose: bool = False,
                 ctx: Optional[ExportContext] = None, **kwargs) -> ExportResult:
    """Copy every row of `table` into Redis using the given encoding mode"""
    exporter = TableExporter(source_kind, source_params, table, redis_address, redis_password,
                             mode=mode, verbose=verbose, **kwargs)
    return exporter.run(ctx)
