#!/usr/bin/env python3
"""
sql2redis Redis Adapter - Destination Connector

Wraps a redis-py client for the export pipelines:
- Address/password configuration, always logical database 0
- Lazy connect: the client is built on first use and the first write
  surfaces any connectivity or authentication failure
- One `apply()` entry point per destination command (SET, RPUSH, HSET)
- redis-py exceptions mapped onto the sql2redis error hierarchy

Usage:
    store = RedisAdapter(RedisConfig.from_address('localhost:6379', ''))
    store.apply(Write('set', 'users:0:id', '1'))
    store.close()
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import redis
import redis.exceptions

from core.context import ExportContext
from core.errors import ConnectionError, WriteError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6379


class ConnectionState(Enum):
    """Destination connection states"""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class RedisConfig:
    """Redis destination configuration"""
    host: str = "localhost"
    port: int = DEFAULT_PORT
    password: Optional[str] = None
    # single logical namespace
    database: int = 0
    socket_timeout: float = 30.0
    socket_connect_timeout: float = 10.0
    ssl: bool = False

    @classmethod
    def from_address(cls, address: str, password: Optional[str] = None, **kwargs) -> 'RedisConfig':
        """Build a config from a host:port address as accepted by redis clients"""
        address = (address or '').strip()
        host, port = address or "localhost", DEFAULT_PORT
        if address.startswith('['):
            # [ipv6]:port
            end = address.find(']')
            host = address[1:end]
            rest = address[end + 1:]
            if rest.startswith(':') and rest[1:]:
                port = cls._parse_port(rest[1:], address)
        elif address.count(':') == 1:
            host, _, raw_port = address.partition(':')
            host = host or "localhost"
            if raw_port:
                port = cls._parse_port(raw_port, address)
        return cls(host=host, port=port, password=password or None, **kwargs)

    @staticmethod
    def _parse_port(raw: str, address: str) -> int:
        try:
            return int(raw)
        except ValueError:
            raise ConnectionError(f"Invalid Redis address: {address!r}", {'address': address}) from None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def to_uri(self, include_password: bool = False) -> str:
        scheme = 'rediss' if self.ssl else 'redis'
        auth = ''
        if self.password:
            auth = f":{self.password if include_password else '***'}@"
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.database}"

    def to_client_kwargs(self, ctx: Optional[ExportContext] = None) -> Dict[str, Any]:
        ctx = ctx or ExportContext.background()
        return {
            'host': self.host,
            'port': self.port,
            'password': self.password,
            'db': self.database,
            'ssl': self.ssl,
            'socket_timeout': ctx.timeout_for(self.socket_timeout),
            'socket_connect_timeout': ctx.timeout_for(self.socket_connect_timeout),
            'decode_responses': True,
        }


class RedisAdapter:
    """Redis destination used by the encoders"""

    def __init__(self, config: Optional[RedisConfig] = None, ctx: Optional[ExportContext] = None, **kwargs):
        self.config = config or RedisConfig(**kwargs)
        self.ctx = ctx or ExportContext.background()
        self.state = ConnectionState.DISCONNECTED
        self._client = None
        self.writes = 0

    @property
    def client(self):
        """redis-py client, created on first use (no network I/O here)"""
        if self._client is None:
            self._client = redis.Redis(**self.config.to_client_kwargs(self.ctx))
            logger.debug(f"Redis client created for {self.config.to_uri()}")
        return self._client

    def apply(self, write, ctx: Optional[ExportContext] = None):
        """
        Execute one destination write

        Args:
            write: core.encoders.Write (command, key, payload)
            ctx: Caller cancellation/deadline token

        Raises:
            ConnectionError: Redis unreachable, timed out or rejected the credentials
            WriteError: Redis rejected the command
        """
        (ctx or self.ctx).check(f"redis {write.command}")
        try:
            if write.command == 'set':
                self.client.set(write.key, write.payload)
            elif write.command == 'rpush':
                self.client.rpush(write.key, *write.payload)
            elif write.command == 'hset':
                self.client.hset(write.key, mapping=write.payload)
            else:
                raise WriteError(f"Unsupported destination command: {write.command}",
                                 {'key': write.key})
        except (redis.exceptions.AuthenticationError,
                redis.exceptions.ConnectionError,
                redis.exceptions.TimeoutError) as e:
            self.state = ConnectionState.ERROR
            logger.error(f"Redis unavailable at {self.config.address}: {e}")
            raise ConnectionError(f"Redis connection failed: {e}",
                                  {'address': self.config.address, 'key': write.key}) from e
        except redis.exceptions.RedisError as e:
            logger.error(f"Redis {write.command.upper()} failed for {write.key}: {e}")
            raise WriteError(f"Redis {write.command.upper()} failed for {write.key}: {e}",
                             {'key': write.key, 'command': write.command}) from e

        self.state = ConnectionState.CONNECTED
        self.writes += 1

    def close(self):
        """Release the client connection pool"""
        if self._client is not None:
            try:
                self._client.close()
            except redis.exceptions.RedisError as e:
                logger.warning(f"Error closing Redis client: {e}")
            finally:
                self._client = None
        self.state = ConnectionState.DISCONNECTED

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'uri': self.config.to_uri(),
            'state': self.state.value,
            'writes': self.writes,
        }


def open_destination(address: str, password: Optional[str] = None,
                     ctx: Optional[ExportContext] = None) -> RedisAdapter:
    """Destination handle for an address and password; connects lazily"""
    adapter = RedisAdapter(RedisConfig.from_address(address, password), ctx=ctx)
    logger.info(f"Redis destination: {adapter.config.to_uri()}")
    return adapter
