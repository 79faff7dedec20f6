from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import mysql.connector

from ..core.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

# Quoted literals (with backslash escapes) are kept whole so a ';' inside them
# never ends a statement.
_SQL_TOKEN_RE = re.compile(
    r"""'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*"|;|[^'";]+|['"]""",
    re.DOTALL,
)
_SKIPPED_LINE_RE = re.compile(r"^\s*(--|CREATE\s+DATABASE\b|USE\b)", re.IGNORECASE)


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_config(cls, db_config: dict) -> "DBTarget":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "punchclock_db")),
        )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    try:
        return mysql.connector.connect(**kwargs)
    except mysql.connector.Error as e:
        logger.error("cannot reach database %s:%s for schema setup: %s", target.host, target.port, e)
        raise StorageUnavailable("Attendance storage is unavailable") from e


def clean_schema_sql(sql: str) -> str:
    """Drop comment lines and any CREATE DATABASE / USE lines.

    The target database comes from DB_CONFIG, not from the schema file.
    """
    return "\n".join(line for line in sql.splitlines() if not _SKIPPED_LINE_RE.match(line))


def iter_sql_statements(sql: str) -> Iterator[str]:
    current: list[str] = []
    for token in _SQL_TOKEN_RE.findall(sql):
        if token != ";":
            current.append(token)
            continue
        stmt = "".join(current).strip()
        current = []
        if stmt:
            yield stmt

    tail = "".join(current).strip()
    if tail:
        yield tail


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    """Create the database if needed and run every statement of the schema file."""
    target = DBTarget.from_config(db_config)
    schema_path = Path(schema_path)
    statements = list(iter_sql_statements(clean_schema_sql(schema_path.read_text(encoding="utf-8"))))

    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        cur.execute(f"USE `{target.database}`")
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("applied %s (%d statements) to %s", schema_path.name, len(statements), target.database)


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBTarget.from_config(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
