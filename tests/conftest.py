#!/usr/bin/env python3
"""
sql2redis Test Configuration - PyTest Configuration and Fixtures

Shared fixtures for the export pipeline tests: SQLite source databases
and an in-memory recording stand-in for the redis-py client.
"""

import os
import sqlite3
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import patch

import pytest
import redis.exceptions

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class RecordingRedis:
    """Records SET/RPUSH/HSET calls the way redis-py would receive them"""

    def __init__(self):
        self.commands: List[Tuple[str, str, Any]] = []
        self.data: Dict[str, Any] = {}
        self.client_kwargs: List[Dict[str, Any]] = []
        self.closed = False
        self.fail_on: Optional[Callable[[str, str], Optional[Exception]]] = None

    def bind(self, **kwargs):
        self.client_kwargs.append(kwargs)
        return self

    def _record(self, command: str, key: str, payload: Any):
        if self.fail_on is not None:
            error = self.fail_on(command, key)
            if error is not None:
                raise error
        self.commands.append((command, key, payload))

    def set(self, key, value):
        self._record('set', key, value)
        self.data[key] = value
        return True

    def rpush(self, key, *values):
        self._record('rpush', key, list(values))
        self.data.setdefault(key, []).extend(values)
        return len(self.data[key])

    def hset(self, key, mapping=None):
        self._record('hset', key, dict(mapping))
        self.data.setdefault(key, {}).update(mapping)
        return len(mapping)

    def close(self):
        self.closed = True

    def fail_at_key(self, failing_key: str, error: Exception = None):
        error = error or redis.exceptions.ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        self.fail_on = lambda command, key: error if key == failing_key else None


@pytest.fixture
def fake_redis():
    """Patch redis.Redis so every adapter talks to one RecordingRedis"""
    store = RecordingRedis()
    with patch('extensions.plugins.redis_adapter.redis.Redis', side_effect=store.bind) as factory:
        store.factory = factory
        yield store


def create_sqlite_table(path: Path, ddl: str, rows: List[tuple], insert_sql: str) -> Path:
    with sqlite3.connect(str(path)) as conn:
        conn.execute(ddl)
        conn.executemany(insert_sql, rows)
        conn.commit()
    conn.close()
    return path


@pytest.fixture
def users_db(tmp_path):
    """SQLite database with users(id, name) holding two rows"""
    return create_sqlite_table(
        tmp_path / "users.db",
        "CREATE TABLE users (id INTEGER, name TEXT)",
        [(1, 'a'), (2, 'b')],
        "INSERT INTO users (id, name) VALUES (?, ?)",
    )


@pytest.fixture
def empty_db(tmp_path):
    """SQLite database with an empty users table"""
    return create_sqlite_table(
        tmp_path / "empty.db",
        "CREATE TABLE users (id INTEGER, name TEXT)",
        [],
        "INSERT INTO users (id, name) VALUES (?, ?)",
    )


@pytest.fixture
def orders_db(tmp_path):
    """SQLite database with five orders, one holding a NULL"""
    return create_sqlite_table(
        tmp_path / "orders.db",
        "CREATE TABLE orders (order_id INTEGER, product TEXT, price REAL, note TEXT)",
        [
            (10, 'Laptop Pro', 1299.99, 'gift'),
            (11, 'Mouse Wireless', 29.99, None),
            (12, 'Keyboard Mechanical', 149.99, ''),
            (13, 'Monitor 4K', 399.99, 'urgent'),
            (14, 'Headphones', 199.99, 'x'),
        ],
        "INSERT INTO orders VALUES (?, ?, ?, ?)",
    )


@pytest.fixture
def images_db(tmp_path):
    """SQLite database with a BLOB column, one value not valid UTF-8"""
    return create_sqlite_table(
        tmp_path / "images.db",
        "CREATE TABLE img (id INTEGER, data BLOB)",
        [(1, b'\xff\xd8\xff\xe0'), (2, b'ok')],
        "INSERT INTO img (id, data) VALUES (?, ?)",
    )


# Custom markers for test organization
def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Pipeline tests running against SQLite sources"
    )
