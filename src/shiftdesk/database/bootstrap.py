from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

SQL_DIR = Path(__file__).resolve().parent
SCHEMA_PATH = SQL_DIR / "schema.sql"
SEED_PATH = SQL_DIR / "seed.sql"

# schema.sql may pin a database name for manual use; the configured one wins.
_DB_PINNING = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b[^;]*;\s*$", re.IGNORECASE | re.MULTILINE)


def split_statements(sql: str) -> Iterator[str]:
    """Yield statements from a shiftdesk SQL file.

    Statements end with ``;`` at the end of a line and ``--`` lines are
    comments. The bundled files keep semicolons out of string literals.
    """
    current: list[str] = []
    for line in _DB_PINNING.sub("", sql).splitlines():
        if not line.strip() or line.lstrip().startswith("--"):
            continue
        current.append(line)
        if line.rstrip().endswith(";"):
            stmt = "\n".join(current).rstrip().rstrip(";").strip()
            current = []
            if stmt:
                yield stmt
    leftover = "\n".join(current).strip()
    if leftover:
        yield leftover


def _server_connection(target: DBConfig, database: str | None = None):
    return mysql.connector.connect(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        database=database,
    )


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _server_connection(target)
    try:
        conn.cursor().execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def run_sql_file(db_config: dict, path: Path) -> int:
    """Execute every statement of ``path`` in one transaction; returns the count."""
    target = DBConfig.from_dict(db_config)
    statements = list(split_statements(path.read_text(encoding="utf-8")))
    conn = _server_connection(target, target.database)
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    except mysql.connector.Error:
        conn.rollback()
        logger.exception("Failed applying %s", path.name)
        raise
    finally:
        conn.close()
    return len(statements)


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    path = Path(schema_path)
    logger.info("Applied %s (%d statements)", path.name, run_sql_file(db_config, path))


def apply_seed_sql(db_config: dict, *, seed_path: str | Path = SEED_PATH) -> None:
    path = Path(seed_path)
    logger.info("Applied %s (%d statements)", path.name, run_sql_file(db_config, path))


def list_tables(db_config: dict) -> list[str]:
    target = DBConfig.from_dict(db_config)
    conn = _server_connection(target, target.database)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return sorted(row[0] for row in cur.fetchall())
    finally:
        conn.close()
