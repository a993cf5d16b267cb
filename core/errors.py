#!/usr/bin/env python3
"""
sql2redis Error Hierarchy
Canonical exception classes for the export pipelines.
"""

from enum import Enum

class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNSUPPORTED_KIND = "UNSUPPORTED_KIND"
    UNSUPPORTED_MODE = "UNSUPPORTED_MODE"
    QUERY_ERROR = "QUERY_ERROR"
    SCAN_ERROR = "SCAN_ERROR"
    STREAM_ERROR = "STREAM_ERROR"
    WRITE_ERROR = "WRITE_ERROR"
    CANCELLED = "CANCELLED"
    TIMEOUT = "TIMEOUT"

class ExportError(Exception):
    """Base class for all sql2redis exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class ConnectionError(ExportError):
    """Raised when the source or destination is unreachable or rejects credentials"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CONNECTION_ERROR, details)

class UnsupportedKindError(ExportError):
    """Raised for a source database kind outside the supported set"""
    def __init__(self, kind: str, supported: list = None):
        details = {'kind': kind, 'supported': supported or []}
        super().__init__(f"SQL database type not known: {kind!r}", ErrorCode.UNSUPPORTED_KIND, details)

class UnsupportedModeError(ExportError):
    """Raised for an encoding mode outside string/list/hash"""
    def __init__(self, mode: str, supported: list = None):
        details = {'mode': mode, 'supported': supported or []}
        super().__init__(f"Redis encoding type not known: {mode!r}", ErrorCode.UNSUPPORTED_MODE, details)

class QueryError(ExportError):
    """Raised when the table read statement fails"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.QUERY_ERROR, details)

class ScanError(ExportError):
    """Raised when a fetched record cannot be decoded into a row"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.SCAN_ERROR, details)

class StreamError(ExportError):
    """Raised when the cursor fails while the stream is being consumed"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.STREAM_ERROR, details)

class WriteError(ExportError):
    """Raised when a destination write is rejected"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.WRITE_ERROR, details)

class CancelledError(ExportError):
    """Raised when the caller cancels the export"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CANCELLED, details)

class DeadlineExceeded(ExportError):
    """Raised when the caller's deadline passes before an operation starts"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.TIMEOUT, details)
