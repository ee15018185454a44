from __future__ import annotations

from pathlib import Path
from typing import Literal
from uuid import UUID

from psycopg import Connection

from formdata_import.ingest.summary import ImportCounters


RunStatus = Literal["running", "succeeded", "failed"]   # injected in


def insert_import_run(conn: Connection, *, input_path: Path, entity_code: str, behavior: str) -> UUID:
    """
    Create an `import_runs` row, returns `run_id`.

    The caller commits immediately, so the run ledger persists even if later steps error.
    """
    row = conn.execute(
        """
        INSERT INTO import_runs (input_path, entity_code, behavior, status)
        VALUES (%s, %s, %s, 'running')
        RETURNING run_id
        """,
        (str(input_path), entity_code, behavior),
    ).fetchone()
    assert row is not None
    return row[0]       # return only `run_id`


def update_import_run_status(conn: Connection, *, run_id: UUID, status: RunStatus) -> None:
    """Updates the status of `import_runs` given a provided `run_id` and `status`."""
    conn.execute(
        "UPDATE import_runs SET status = %s, finished_at = now() WHERE run_id = %s",
        (status, run_id),
    )


def finish_import_run(conn: Connection, *, run_id: UUID, status: RunStatus, counters: ImportCounters) -> None:
    """Record the final status along with the run's created/updated/deleted counters."""
    conn.execute(
        """
        UPDATE import_runs
        SET status = %s, created = %s, updated = %s, deleted = %s, finished_at = now()
        WHERE run_id = %s
        """,
        (status, counters.created, counters.updated, counters.deleted, run_id),
    )
