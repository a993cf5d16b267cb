"""
sql2redis Migration Runner
==========================

Alternate pipeline that stores every row of a table as a Redis hash under
a freshly generated UUID4 key. Table name and row position play no part
in the key.

The generated identifier of each row is echoed to the console; the trace
is on by default and can be disabled with `verbose=False`.
"""

import uuid
from typing import Callable, List, Optional, Union

from core.context import ExportContext
from core.database_manager import BackendType, SourceParams
from core.encoders import KeyEncoder, Write
from core.exporter import ExportPipeline, ExportResult
from core.reporter import ProgressReporter
from core.rows import Row


class UUIDHashEncoder(KeyEncoder):
    """Hash per row, keyed by a random UUID"""

    def __init__(self, store, reporter: Optional[ProgressReporter] = None, null_text: str = "",
                 id_factory: Callable[[], uuid.UUID] = uuid.uuid4):
        super().__init__(store, table="", reporter=reporter, null_text=null_text)
        self.id_factory = id_factory

    def encode(self, row: Row, index: int) -> List[Write]:
        key = str(self.id_factory())
        return [Write('hset', key, row.as_mapping(self.null_text))]


class MigrationRunner(ExportPipeline):
    """Table -> UUID keyed hashes"""

    banner = "Migration Complete!"
    mode_name = "migrate"

    def __init__(self, source_kind: Union[str, BackendType], source_params: SourceParams, table: str,
                 redis_address: str, redis_password: Optional[str] = None, verbose: bool = True,
                 id_factory: Callable[[], uuid.UUID] = uuid.uuid4, **kwargs):
        super().__init__(source_kind, source_params, table, redis_address, redis_password,
                         verbose=verbose, **kwargs)
        self.id_factory = id_factory

    def make_reporter(self) -> ProgressReporter:
        return ProgressReporter(enabled=self.verbose, stream=self.output, show_payload=False)

    def build_encoder(self, store, reporter: ProgressReporter) -> KeyEncoder:
        return UUIDHashEncoder(store, reporter=reporter, null_text=self.null_text,
                               id_factory=self.id_factory)


def migrate_table(source_kind: Union[str, BackendType], source_params: SourceParams, table: str,
                  redis_address: str, redis_password: Optional[str] = None, verbose: bool = True,
                  ctx: Optional[ExportContext] = None, **kwargs) -> ExportResult:
    """Convert the rows of `table` into UUID keyed Redis hashes"""
    runner = MigrationRunner(source_kind, source_params, table, redis_address, redis_password,
                             verbose=verbose, **kwargs)
    return runner.run(ctx)
