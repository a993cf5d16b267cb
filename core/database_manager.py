#!/usr/bin/env python3
"""
sql2redis Database Manager - Source Connector

This module resolves a source database kind to one of the supported
backend adapters and opens a validated (pinged) connection through it.

Supported backends:
- MySQL / MariaDB (PyMySQL)
- PostgreSQL (psycopg2)
- SQLite (built-in)

Usage:
    params = SourceParams(user='app', password='secret', database='shop')
    adapter = open_source('postgres', params)
    try:
        ...
    finally:
        adapter.close()
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from core.context import ExportContext
from core.errors import ConnectionError, UnsupportedKindError

# Configure logging
logger = logging.getLogger(__name__)

# Password literal meaning "connect without a password"
NO_PASSWORD = " "


class ConnectionState(Enum):
    """Connection states"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class BackendType(Enum):
    """Supported source database kinds"""
    MYSQL = "mysql"
    POSTGRESQL = "postgres"
    SQLITE = "sqlite"

    @classmethod
    def aliases(cls) -> Dict[str, 'BackendType']:
        return {
            'mysql': cls.MYSQL,
            'mariadb': cls.MYSQL,
            'postgres': cls.POSTGRESQL,
            'postgresql': cls.POSTGRESQL,
            'sqlite': cls.SQLITE,
            'sqlite3': cls.SQLITE,
        }

    @classmethod
    def resolve(cls, kind: Union[str, 'BackendType']) -> 'BackendType':
        """Map a user supplied kind to a backend, failing before any connection"""
        if isinstance(kind, BackendType):
            return kind
        backend = cls.aliases().get(str(kind or '').strip().lower())
        if backend is None:
            raise UnsupportedKindError(str(kind), sorted(cls.aliases()))
        return backend


@dataclass
class SourceParams:
    """Already-resolved connection parameters for the source database"""
    user: str = ""
    password: str = ""
    database: str = ""
    host: str = "localhost"
    port: Optional[Union[int, str]] = None

    @property
    def has_password(self) -> bool:
        return self.password != NO_PASSWORD and self.password is not None

    @property
    def effective_password(self) -> Optional[str]:
        """Password to hand to the driver, None for the no-password literal"""
        return self.password if self.has_password else None

    def port_or(self, default: int) -> int:
        if self.port in (None, ""):
            return default
        try:
            return int(self.port)
        except (TypeError, ValueError):
            raise ConnectionError(f"Invalid source port: {self.port!r}",
                                  {'host': self.host, 'port': self.port}) from None

    def get_safe_dict(self) -> Dict[str, Any]:
        return {
            'user': self.user,
            'database': self.database,
            'host': self.host,
            'port': self.port,
            'password_set': bool(self.effective_password),
        }


def sanitize_error(e: Exception) -> str:
    """Mask credentials in driver error messages"""
    msg = str(e)
    msg = re.sub(r'://([^:/@]+):([^@]+)@', r'://\1:***@', msg)
    return re.sub(r"(password=)\S+", r"\1***", msg)


class DatabaseAdapter:
    """Base class for source database adapters"""

    backend_type: BackendType = None
    # DB-API base exception of the underlying driver
    driver_error = Exception

    def __init__(self, params: SourceParams):
        self.params = params
        self.state = ConnectionState.DISCONNECTED
        self._connection = None

    @property
    def connection(self):
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def connect(self, ctx: Optional[ExportContext] = None):
        """Open and ping the connection - to be implemented by subclasses"""
        raise NotImplementedError("Subclasses must implement connect")

    def ping(self):
        """Liveness probe - to be implemented by subclasses"""
        raise NotImplementedError("Subclasses must implement ping")

    def stream_cursor(self):
        """Cursor suited to a single forward-only full table read"""
        return self._connection.cursor()

    def quote_identifier(self, identifier: str) -> str:
        """Quote a possibly schema qualified table name"""
        return '.'.join(self._quote_part(part) for part in identifier.split('.'))

    def _quote_part(self, part: str) -> str:
        return '"' + part.replace('"', '""') + '"'

    def _validate(self, ctx: ExportContext):
        """Ping a freshly opened connection, closing it when the probe fails"""
        try:
            ctx.check("source ping")
            self.ping()
        except Exception:
            self.state = ConnectionState.ERROR
            try:
                self.close()
            except self.driver_error as e:
                logger.warning(f"Error closing failed source connection: {sanitize_error(e)}")
            raise
        self.state = ConnectionState.CONNECTED

    def close(self):
        if self._connection is not None:
            try:
                self._connection.close()
            finally:
                self._connection = None
                logger.debug(f"{self.backend_type.value} source connection closed")
        if self.state != ConnectionState.ERROR:
            self.state = ConnectionState.DISCONNECTED


def get_available_backends() -> List[str]:
    return [backend.value for backend in BackendType]


def create_adapter(kind: Union[str, BackendType], params: SourceParams) -> DatabaseAdapter:
    """Build the adapter for a kind without connecting"""
    backend = BackendType.resolve(kind)

    if backend == BackendType.MYSQL:
        from extensions.plugins.mysql_adapter import MySQLAdapter
        return MySQLAdapter(params)
    if backend == BackendType.POSTGRESQL:
        from extensions.plugins.postgresql_adapter import PostgreSQLAdapter
        return PostgreSQLAdapter(params)

    from extensions.plugins.sqlite_adapter import SQLiteAdapter
    return SQLiteAdapter(params)


def open_source(kind: Union[str, BackendType], params: SourceParams,
                ctx: Optional[ExportContext] = None) -> DatabaseAdapter:
    """
    Open a validated connection to the source database

    Args:
        kind: Source database kind (mysql, postgres, sqlite or an alias)
        params: Connection parameters
        ctx: Caller cancellation/deadline token

    Returns:
        Connected adapter; the caller owns it and must close it

    Raises:
        UnsupportedKindError: kind is not supported (no connection attempted)
        ConnectionError: the connection could not be opened or failed its ping
    """
    ctx = ctx or ExportContext.background()
    adapter = create_adapter(kind, params)
    ctx.check("source connect")
    adapter.connect(ctx)
    logger.info(f"Connected to {adapter.backend_type.value} source "
                f"{params.host}:{params.port or 'default'}/{params.database}")
    return adapter
