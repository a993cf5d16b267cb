#!/usr/bin/env python3
"""
Export Configuration for sql2redis
Loads connection settings and export options from the environment
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from core.database_manager import SourceParams

ENV_PREFIX = "SQL2REDIS_"

TRUE_VALUES = ('1', 'true', 'yes', 'on')


@dataclass
class ExportSettings:
    """sql2redis configuration settings"""

    # Source database
    source_type: str = "mysql"
    sql_user: str = ""
    sql_password: str = ""
    sql_database: str = ""
    sql_host: str = "localhost"
    sql_port: str = ""
    sql_table: str = ""

    # Redis destination
    redis_addr: str = "localhost:6379"
    redis_password: str = ""

    # Export options
    redis_type: str = "hash"
    migrate: bool = False
    log: bool = False
    timeout: Optional[float] = None
    batch_size: int = 500
    null_text: str = ""

    # Runtime settings
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ExportSettings':
        """Build settings from SQL2REDIS_* variables, dataclass defaults otherwise"""
        environ = os.environ if environ is None else environ
        settings = cls()
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            setattr(settings, f.name, _coerce(f.name, raw, getattr(settings, f.name)))
        return settings

    def source_params(self) -> SourceParams:
        return SourceParams(
            user=self.sql_user,
            password=self.sql_password,
            database=self.sql_database,
            host=self.sql_host,
            port=self.sql_port or None,
        )

    def get_safe_dict(self) -> Dict[str, Any]:
        """Get configuration as dict without sensitive values"""
        safe = {f.name: getattr(self, f.name) for f in fields(self)}
        for key in ('sql_password', 'redis_password'):
            safe[key] = '***' if safe[key] and safe[key] != ' ' else ''
        return safe


def _coerce(name: str, raw: str, current: Any) -> Any:
    if name == 'timeout':
        return float(raw) if raw.strip() else None
    if isinstance(current, bool):
        return raw.strip().lower() in TRUE_VALUES
    if isinstance(current, int):
        return int(raw)
    # passwords keep surrounding whitespace, " " means no password
    if name.endswith('password'):
        return raw
    return raw.strip()


def load_env_file(env_file: Path, environ: Optional[Dict[str, str]] = None):
    """Load KEY=VALUE lines from a .env file.

    Only sets values for keys not already in the environment, so exported
    variables take precedence over the file.
    """
    environ = os.environ if environ is None else environ
    with open(env_file, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip()
                if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                    value = value[1:-1]
                if key not in environ:
                    environ[key] = value


def load_settings(env_file: Optional[Path] = None) -> ExportSettings:
    """Load settings.

    Priority (highest to lowest):
    1. Environment variables (SQL2REDIS_*)
    2. .env file (loaded into os.environ before settings creation)
    3. ExportSettings dataclass defaults
    """
    if env_file is None:
        env_file = Path(os.getcwd()) / '.env'
        if env_file.exists():
            load_env_file(env_file)
    else:
        load_env_file(Path(env_file))
    return ExportSettings.from_env()
