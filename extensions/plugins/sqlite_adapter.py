#!/usr/bin/env python3
"""
sql2redis SQLite Adapter

Provides the SQLite source for local exports and fixtures. The
`database` connection parameter is the database file path (or
':memory:'); user, password, host and port are ignored.
"""

import sqlite3
import logging
from pathlib import Path
from typing import Optional

from core.context import ExportContext
from core.database_manager import BackendType, ConnectionState, DatabaseAdapter, SourceParams
from core.errors import ConnectionError

logger = logging.getLogger(__name__)


class SQLiteAdapter(DatabaseAdapter):
    """SQLite source adapter."""

    backend_type = BackendType.SQLITE
    driver_error = sqlite3.Error

    def __init__(self, params: SourceParams, timeout: float = 30.0):
        super().__init__(params)
        self.database = params.database or ':memory:'
        self.timeout = timeout

    def connect(self, ctx: Optional[ExportContext] = None):
        """Open the database file read only and ping it."""
        ctx = ctx or ExportContext.background()
        self.state = ConnectionState.CONNECTING

        if self.database != ':memory:' and not Path(self.database).exists():
            self.state = ConnectionState.ERROR
            raise ConnectionError(f"SQLite database not found: {self.database}",
                                  {'backend': 'sqlite'})

        try:
            if self.database == ':memory:':
                self._connection = sqlite3.connect(self.database, timeout=ctx.timeout_for(self.timeout))
            else:
                uri = f"{Path(self.database).resolve().as_uri()}?mode=ro"
                self._connection = sqlite3.connect(uri, uri=True, timeout=ctx.timeout_for(self.timeout))
            logger.debug(f"Connected to SQLite database: {self.database}")
        except sqlite3.Error as e:
            self.state = ConnectionState.ERROR
            logger.error(f"Failed to connect to SQLite: {e}")
            raise ConnectionError(f"SQLite connection failed: {e}", {'backend': 'sqlite'}) from e

        self._validate(ctx)
        return self._connection

    def ping(self):
        try:
            self._connection.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            raise ConnectionError(f"SQLite ping failed: {e}", {'backend': 'sqlite'}) from e
