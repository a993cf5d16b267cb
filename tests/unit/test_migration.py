#!/usr/bin/env python3
"""
Migration Pipeline Tests

Rows stored as hashes under freshly generated UUID keys.
"""

import itertools
import re
import uuid

import pytest

from core.database_manager import SourceParams
from core.errors import UnsupportedKindError, WriteError
from core.exporter import ExportState
from core.migration import MigrationRunner, UUIDHashEncoder, migrate_table
from core.rows import Row
from unittest.mock import MagicMock

UUID_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$')


def sqlite_params(path):
    return SourceParams(database=str(path))


class TestUUIDHashEncoder:

    def test_key_ignores_table_and_index(self):
        fixed = uuid.UUID('12345678-1234-4234-8234-123456789abc')
        encoder = UUIDHashEncoder(MagicMock(), id_factory=lambda: fixed)
        writes = encoder.encode(Row(("id", "name"), (1, "a")), 99)

        assert writes[0].command == 'hset'
        assert writes[0].key == '12345678-1234-4234-8234-123456789abc'
        assert writes[0].payload == {'id': '1', 'name': 'a'}

    def test_fresh_key_per_row(self):
        encoder = UUIDHashEncoder(MagicMock())
        row = Row(("id",), (1,))
        keys = {encoder.encode(row, 0)[0].key for _ in range(50)}
        assert len(keys) == 50


@pytest.mark.integration
class TestMigrationRunner:

    def test_keys_are_distinct_uuid4(self, orders_db, fake_redis):
        result = migrate_table('sqlite', sqlite_params(orders_db), 'orders', 'localhost:6379', verbose=False)

        keys = [key for _, key, _ in fake_redis.commands]
        assert len(keys) == 5
        assert len(set(keys)) == 5
        for key in keys:
            assert len(key) == 36
            assert UUID_PATTERN.match(key)
            assert uuid.UUID(key).version == 4
        assert result.rows == 5
        assert result.state == ExportState.CLOSED

    def test_rows_stored_as_hashes(self, users_db, fake_redis):
        ids = iter([uuid.UUID(int=1), uuid.UUID(int=2)])
        migrate_table('sqlite', sqlite_params(users_db), 'users', 'localhost:6379',
                      verbose=False, id_factory=lambda: next(ids))

        assert fake_redis.commands == [
            ('hset', '00000000-0000-0000-0000-000000000001', {'id': '1', 'name': 'a'}),
            ('hset', '00000000-0000-0000-0000-000000000002', {'id': '2', 'name': 'b'}),
        ]

    def test_identifier_echoed_by_default(self, users_db, fake_redis, capsys):
        counter = itertools.count(1)
        migrate_table('sqlite', sqlite_params(users_db), 'users', 'localhost:6379',
                      id_factory=lambda: uuid.UUID(int=next(counter)))

        out = capsys.readouterr().out
        assert "00000000-0000-0000-0000-000000000001\n" in out
        assert "00000000-0000-0000-0000-000000000002\n" in out
        # identifiers only, not payloads
        assert '"name"' not in out
        assert "Migration Complete!" in out

    def test_trace_can_be_disabled(self, users_db, fake_redis, capsys):
        migrate_table('sqlite', sqlite_params(users_db), 'users', 'localhost:6379', verbose=False)
        out = capsys.readouterr().out
        assert "Redis Keys:" not in out
        assert "Migration Complete!" in out

    def test_write_failure_aborts(self, orders_db, fake_redis):
        calls = itertools.count()
        fake_redis.fail_on = lambda command, key: WriteError("rejected") if next(calls) == 1 else None
        runner = MigrationRunner('sqlite', sqlite_params(orders_db), 'orders', 'localhost:6379', verbose=False)

        with pytest.raises(WriteError):
            runner.run()
        assert len(fake_redis.commands) == 1
        assert runner.state == ExportState.FAILED

    def test_unsupported_kind(self, fake_redis):
        with pytest.raises(UnsupportedKindError):
            migrate_table('db2', SourceParams(), 'users', 'localhost:6379')
        fake_redis.factory.assert_not_called()

    def test_empty_table(self, empty_db, fake_redis):
        result = migrate_table('sqlite', sqlite_params(empty_db), 'users', 'localhost:6379', verbose=False)
        assert result.rows == 0
        assert fake_redis.commands == []
