#!/usr/bin/env python3
"""
sql2redis Command Line
======================

Copy the rows of one SQL table into Redis.

Usage:
    # Each row as a hash under users:<index>
    python3 tools/sql_to_redis.py --source-type postgres --user app --password secret \\
        --database shop --host localhost --port 5432 --table users --type hash --log

    # Each row as a hash under a random UUID
    python3 tools/sql_to_redis.py --source-type mysql --user root --password " " \\
        --database shop --table users --migrate

Every option can also come from a SQL2REDIS_* environment variable or a
.env file (see config/export_config.py).
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))

from config.export_config import ExportSettings, load_settings
from core.context import ExportContext
from core.database_manager import get_available_backends
from core.encoders import EncodingMode
from core.errors import ExportError
from core.exporter import export_table
from core.migration import migrate_table

logger = logging.getLogger(__name__)


def build_parser(settings: ExportSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Copy a SQL table into Redis")
    parser.add_argument("--env-file", help="Load SQL2REDIS_* settings from this file")
    parser.add_argument("--source-type", default=settings.source_type,
                        help=f"Source database kind ({', '.join(get_available_backends())})")
    parser.add_argument("--user", default=settings.sql_user, help="SQL user")
    parser.add_argument("--password", default=settings.sql_password,
                        help='SQL password; a single space (" ") connects without one')
    parser.add_argument("--database", default=settings.sql_database,
                        help="SQL database name (file path for sqlite)")
    parser.add_argument("--host", default=settings.sql_host, help="SQL host")
    parser.add_argument("--port", default=settings.sql_port, help="SQL port")
    parser.add_argument("--table", default=settings.sql_table,
                        help="Table to export, optionally schema.table; quoted as given, so the case "
                             "must match the stored name (users, not Users, for an unquoted "
                             "PostgreSQL table)")
    parser.add_argument("--redis-addr", default=settings.redis_addr, help="Redis address host:port")
    parser.add_argument("--redis-password", default=settings.redis_password, help="Redis password")
    parser.add_argument("--type", dest="redis_type", default=settings.redis_type,
                        choices=[m.value for m in EncodingMode] + ['scalar'],
                        help="Redis value shape for each row")
    parser.add_argument("--migrate", action="store_true", default=settings.migrate,
                        help="Store rows as hashes under random UUID keys")
    parser.add_argument("--log", action="store_true", default=settings.log,
                        help="Print every key written")
    parser.add_argument("--timeout", type=float, default=settings.timeout,
                        help="Abort the export after this many seconds")
    parser.add_argument("--batch-size", type=int, default=settings.batch_size,
                        help="Rows fetched from the source per round trip")
    parser.add_argument("--null-text", default=settings.null_text,
                        help="Text written for SQL NULL values (default: empty string)")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    return parser


def _pre_parse_env_file(argv: Optional[List[str]]) -> Optional[str]:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--env-file")
    known, _ = pre.parse_known_args(argv)
    return known.env_file


def main(argv: Optional[List[str]] = None) -> int:
    env_file = _pre_parse_env_file(argv)
    settings = load_settings(Path(env_file) if env_file else None)
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if not args.table:
        parser.error("--table is required")

    # Configure logging
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    settings.source_type = args.source_type
    settings.sql_user = args.user
    settings.sql_password = args.password
    settings.sql_database = args.database
    settings.sql_host = args.host
    settings.sql_port = args.port
    settings.sql_table = args.table
    settings.redis_addr = args.redis_addr
    settings.redis_password = args.redis_password
    settings.redis_type = args.redis_type
    settings.migrate = args.migrate
    settings.log = args.log
    settings.timeout = args.timeout
    settings.batch_size = args.batch_size
    settings.null_text = args.null_text
    logger.debug(f"Settings: {json.dumps(settings.get_safe_dict())}")

    ctx = ExportContext(timeout=settings.timeout)
    common = dict(
        redis_password=settings.redis_password,
        ctx=ctx,
        batch_size=settings.batch_size,
        null_text=settings.null_text,
    )

    try:
        if settings.migrate:
            result = migrate_table(settings.source_type, settings.source_params(), settings.sql_table,
                                   settings.redis_addr, verbose=True, **common)
        else:
            result = export_table(settings.source_type, settings.source_params(), settings.sql_table,
                                  settings.redis_addr, mode=settings.redis_type,
                                  verbose=settings.log, **common)
    except ExportError as e:
        logger.error(f"Fatal error [{e.code.value}]: {e.message}")
        return 1
    except KeyboardInterrupt:
        ctx.cancel()
        logger.error("Export interrupted")
        return 130

    logger.info(f"Run summary: {json.dumps(result.to_dict())}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
