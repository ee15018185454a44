from __future__ import annotations

from typing import Any, Sequence
from uuid import UUID

from psycopg import Connection, sql

from formdata_import.parsing.types import RowError


def insert_import_errors(conn: Connection, *, run_id: UUID, errors: Sequence[RowError]) -> int:
    """
    Insert a run's row errors into the DB's `import_errors`. Returns the inserted row count.

    Table/column identifiers are fixed/non derived constants.
    Values are parameterized directly.
    """
    cols = ("run_id", "row_number", "error_code", "message")

    query = sql.SQL("INSERT INTO {tbl} ({cols}) VALUES ({vals})").format(
        tbl=sql.Identifier("import_errors"),
        cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
        vals=sql.SQL(", ").join(sql.Placeholder() for _ in cols),
    )

    params: list[tuple[Any, ...]] = [
        (run_id, e.row_number, e.code.value, e.message)
        for e in errors
    ]

    if params:
        with conn.cursor() as cur:
            cur.executemany(query, params)  # sequential batch processing
    return len(params)
