#!/usr/bin/env python3
"""
sql2redis MySQL Adapter - Source Connector for MySQL/MariaDB

Opens a single read connection with PyMySQL and hands out unbuffered
cursors so a full table read is streamed row by row instead of being
materialized client side.

Value decoders are stripped from the connection so every column comes
back as the server's raw payload (text columns as str, binary columns as
bytes), never as a typed Python value.

Usage:
    adapter = MySQLAdapter(SourceParams(user='root', password=' ', database='shop'))
    adapter.connect()
"""

import pymysql
import pymysql.converters
import pymysql.cursors
from pymysql import MySQLError
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass

from core.context import ExportContext
from core.database_manager import (
    BackendType, ConnectionState, DatabaseAdapter, SourceParams, sanitize_error
)
from core.errors import ConnectionError

# Configure logging
logger = logging.getLogger(__name__)

# Encoders only: no result decoders, values stay raw
RAW_CONVERSIONS = {
    key: value for key, value in pymysql.converters.conversions.items()
    if not isinstance(key, int)
}

@dataclass
class ConnectionConfig:
    """MySQL connection configuration"""
    host: str = "localhost"
    port: int = 3306
    database: str = ""
    user: str = ""
    password: Optional[str] = None

    # Performance settings
    connect_timeout: int = 10
    read_timeout: int = 300
    write_timeout: int = 30

    charset: str = "utf8mb4"

    @classmethod
    def from_params(cls, params: SourceParams) -> 'ConnectionConfig':
        return cls(
            host=params.host or "localhost",
            port=params.port_or(3306),
            database=params.database,
            user=params.user,
            password=params.effective_password,
        )

    def to_dsn(self) -> str:
        """Display form, user@/db without a password and user:***@/db with one"""
        if self.password is None:
            return f"{self.user}@{self.host}:{self.port}/{self.database}"
        return f"{self.user}:***@{self.host}:{self.port}/{self.database}"

    def to_connection_params(self, ctx: Optional[ExportContext] = None) -> Dict[str, Any]:
        """Convert to PyMySQL connection parameters"""
        ctx = ctx or ExportContext.background()
        params = {
            'host': self.host,
            'port': self.port,
            'database': self.database,
            'user': self.user,
            'connect_timeout': ctx.timeout_for(self.connect_timeout),
            'read_timeout': ctx.timeout_for(self.read_timeout),
            'write_timeout': ctx.timeout_for(self.write_timeout),
            'charset': self.charset,
            'autocommit': True,
            'conv': RAW_CONVERSIONS,
        }
        # No password key at all for the empty-auth form
        if self.password is not None:
            params['password'] = self.password
        return params

class MySQLAdapter(DatabaseAdapter):
    """MySQL/MariaDB source adapter"""

    backend_type = BackendType.MYSQL
    driver_error = MySQLError

    def __init__(self, params: SourceParams, config: Optional[ConnectionConfig] = None):
        super().__init__(params)
        self.config = config or ConnectionConfig.from_params(params)

    def connect(self, ctx: Optional[ExportContext] = None):
        """Open the connection and ping it"""
        ctx = ctx or ExportContext.background()
        self.state = ConnectionState.CONNECTING
        logger.info(f"Connecting to MySQL source: {self.config.to_dsn()}")
        try:
            self._connection = pymysql.connect(**self.config.to_connection_params(ctx))
        except MySQLError as e:
            self.state = ConnectionState.ERROR
            logger.error(f"Failed to connect to MySQL source: {sanitize_error(e)}")
            raise ConnectionError(f"MySQL connection failed: {sanitize_error(e)}",
                                  {'backend': 'mysql'}) from e
        self._validate(ctx)
        return self._connection

    def ping(self):
        try:
            self._connection.ping(reconnect=False)
        except MySQLError as e:
            raise ConnectionError(f"MySQL ping failed: {sanitize_error(e)}", {'backend': 'mysql'}) from e

    def stream_cursor(self):
        """Unbuffered cursor, rows are pulled from the server as they are fetched"""
        return self._connection.cursor(pymysql.cursors.SSCursor)

    def _quote_part(self, part: str) -> str:
        return '`' + part.replace('`', '``') + '`'
