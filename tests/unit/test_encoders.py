#!/usr/bin/env python3
"""
Key Encoder Tests

Key layouts and write counts of the string, list and hash strategies.
"""

import io
from unittest.mock import MagicMock

import pytest

from core.context import ExportContext
from core.encoders import (
    EncodingMode, HashEncoder, ListEncoder, ScalarEncoder, Write, get_encoder
)
from core.errors import CancelledError, UnsupportedModeError, WriteError
from core.reporter import ProgressReporter
from core.rows import Row


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def row():
    return Row(("id", "name", "email"), (1, "Alice", None))


def applied(store):
    return [c.args[0] for c in store.apply.call_args_list]


class TestEncodingMode:

    @pytest.mark.parametrize("value,expected", [
        ("string", EncodingMode.STRING),
        ("scalar", EncodingMode.STRING),
        ("LIST", EncodingMode.LIST),
        (" hash ", EncodingMode.HASH),
        (EncodingMode.HASH, EncodingMode.HASH),
    ])
    def test_parse(self, value, expected):
        assert EncodingMode.parse(value) == expected

    def test_unknown_mode(self):
        with pytest.raises(UnsupportedModeError) as exc_info:
            EncodingMode.parse("zset")
        assert "zset" in str(exc_info.value)

    def test_get_encoder_selects_strategy(self, store):
        assert isinstance(get_encoder("string", store, "users"), ScalarEncoder)
        assert isinstance(get_encoder("list", store, "users"), ListEncoder)
        assert isinstance(get_encoder("hash", store, "users"), HashEncoder)


class TestScalarEncoder:

    def test_one_write_per_column(self, store, row):
        encoder = ScalarEncoder(store, table="users")
        writes = encoder.write(row, 3)

        assert writes == [
            Write('set', 'users:3:id', '1'),
            Write('set', 'users:3:name', 'Alice'),
            Write('set', 'users:3:email', ''),
        ]
        assert applied(store) == writes
        assert encoder.writes == 3

    def test_stops_at_first_failed_column(self, store, row):
        store.apply.side_effect = [None, WriteError("boom"), None]
        encoder = ScalarEncoder(store, table="users")

        with pytest.raises(WriteError):
            encoder.write(row, 0)
        assert store.apply.call_count == 2
        assert encoder.writes == 1


class TestListEncoder:

    def test_single_rpush_of_values(self, store, row):
        writes = ListEncoder(store, table="users").write(row, 0)
        assert writes == [Write('rpush', 'users:0', ['1', 'Alice', ''])]
        assert store.apply.call_count == 1


class TestHashEncoder:

    def test_single_hset_of_mapping(self, store, row):
        writes = HashEncoder(store, table="users").write(row, 7)
        assert writes == [Write('hset', 'users:7', {'id': '1', 'name': 'Alice', 'email': ''})]

    def test_duplicate_columns_last_wins(self, store):
        row = Row(("id", "id"), ("1", "2"))
        writes = HashEncoder(store, table="t").encode(row, 0)
        assert writes[0].payload == {'id': '2'}

    def test_null_text_override(self, store, row):
        writes = HashEncoder(store, table="users", null_text="NULL").encode(row, 0)
        assert writes[0].payload['email'] == 'NULL'


class TestReporting:

    def test_each_write_is_echoed_when_enabled(self, store, row):
        out = io.StringIO()
        encoder = ScalarEncoder(store, table="users", reporter=ProgressReporter(enabled=True, stream=out))
        encoder.write(row, 0)

        lines = out.getvalue().splitlines()
        assert lines == ["users:0:id -> 1", "users:0:name -> Alice", "users:0:email -> "]

    def test_hash_payload_printed_as_json(self, store, row):
        out = io.StringIO()
        HashEncoder(store, table="users", reporter=ProgressReporter(enabled=True, stream=out)).write(row, 0)
        assert out.getvalue().strip() == 'users:0 -> {"id": "1", "name": "Alice", "email": ""}'

    def test_silent_when_disabled(self, store, row):
        out = io.StringIO()
        ListEncoder(store, table="users", reporter=ProgressReporter(enabled=False, stream=out)).write(row, 0)
        assert out.getvalue() == ""

    def test_failed_write_not_reported(self, store, row):
        out = io.StringIO()
        store.apply.side_effect = WriteError("boom")
        encoder = HashEncoder(store, table="users", reporter=ProgressReporter(enabled=True, stream=out))
        with pytest.raises(WriteError):
            encoder.write(row, 0)
        assert out.getvalue() == ""


def test_cancelled_context_prevents_writes(store, row):
    ctx = ExportContext()
    ctx.cancel()
    with pytest.raises(CancelledError):
        ScalarEncoder(store, table="users").write(row, 0, ctx)
    store.apply.assert_not_called()
