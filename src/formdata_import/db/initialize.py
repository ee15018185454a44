from __future__ import annotations

import logging
from pathlib import Path

import psycopg

from formdata_import.db.connect import connect

logger = logging.getLogger(__name__)


def split_statements(script: str) -> list[str]:
    """
    Split a schema script into statements on `;`.

    Whole-line `--` comments are dropped first, so they may contain anything.
    Semicolons inside string literals or function bodies are not supported.
    """
    lines = [ln for ln in script.splitlines() if not ln.lstrip().startswith("--")]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def schema_files(sql_path: Path) -> list[Path]:
    """`sql_path` itself, or every `*.sql` file in it by name."""
    if not sql_path.is_dir():
        return [sql_path]
    files = sorted(sql_path.glob("*.sql"))
    if not files:
        raise FileNotFoundError(f"no .sql files in {sql_path}")
    return files


def run_sql_file(conn: psycopg.Connection, sql_path: Path) -> None:
    """Execute a schema file statement by statement and commit; the failing statement is named in the error."""
    statements = split_statements(sql_path.read_text(encoding="utf-8"))

    with conn.cursor() as cur:
        for n, stmt in enumerate(statements, 1):
            try:
                cur.execute(stmt)
            except psycopg.Error as e:
                raise RuntimeError(f"schema init failed: {sql_path} statement #{n}: {e}\n{stmt}") from e
    conn.commit()
    logger.info("applied %s (%d statements)", sql_path, len(statements))


def db_init(*, sql_path: Path) -> None:
    """Create the `form_data`, `import_runs` and `import_errors` tables from `sql_path` (a file or a directory)."""
    files = schema_files(sql_path)
    with connect() as conn:
        for p in files:
            run_sql_file(conn, p)
