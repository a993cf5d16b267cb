#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sql2redis Core Package Initialization
Exports all main components for clean imports
"""

from core.errors import (
    ErrorCode,
    ExportError,
    ConnectionError,
    UnsupportedKindError,
    UnsupportedModeError,
    QueryError,
    ScanError,
    StreamError,
    WriteError,
    CancelledError,
    DeadlineExceeded,
)
from core.context import ExportContext
from core.database_manager import BackendType, SourceParams, DatabaseAdapter, open_source
from core.rows import Row, RowStream, to_text
from core.reporter import ProgressReporter
from core.encoders import (
    EncodingMode,
    Write,
    KeyEncoder,
    ScalarEncoder,
    ListEncoder,
    HashEncoder,
    get_encoder,
)
from core.exporter import ExportState, ExportResult, TableExporter, export_table
from core.migration import UUIDHashEncoder, MigrationRunner, migrate_table

__all__ = [
    # Errors
    'ErrorCode',
    'ExportError',
    'ConnectionError',
    'UnsupportedKindError',
    'UnsupportedModeError',
    'QueryError',
    'ScanError',
    'StreamError',
    'WriteError',
    'CancelledError',
    'DeadlineExceeded',
    # Source and rows
    'ExportContext',
    'BackendType',
    'SourceParams',
    'DatabaseAdapter',
    'open_source',
    'Row',
    'RowStream',
    'to_text',
    # Encoding
    'ProgressReporter',
    'EncodingMode',
    'Write',
    'KeyEncoder',
    'ScalarEncoder',
    'ListEncoder',
    'HashEncoder',
    'get_encoder',
    # Pipelines
    'ExportState',
    'ExportResult',
    'TableExporter',
    'export_table',
    'UUIDHashEncoder',
    'MigrationRunner',
    'migrate_table',
]

__version__ = '0.1.0'
