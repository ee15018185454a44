from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Mapping, Sequence, TypeVar

import psycopg
from psycopg import Connection, sql

from formdata_import.db.table_specs import TableWriteSpec
from formdata_import.ingest.summary import ImportCounters

logger = logging.getLogger(__name__)

H = TypeVar("H", bound=Hashable)

# digit strings that fit a bigint; the same pattern is matched in SQL
_SEQUENCE_ID_PATTERN = "^[0-9]{1,18}$"
_SEQUENCE_ID_RE = re.compile(_SEQUENCE_ID_PATTERN)

# id-keyed payloads accumulated for one bunch; `None` groups the rows without an id
EntityBatch = Mapping[str | None, Sequence[Mapping[str, Any]]]


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of one write call.

    Delete failures come back as `ok=False` with `error` set instead of raising,
    so the replace flow can skip the dependent insert.
    """
    ok: bool
    affected_rows: int = 0
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok


def unique_ids(ids: Iterable[H | None]) -> list[H]:
    """Dedupe ids keeping first-seen order. `None` (no id) is dropped."""
    return list(dict.fromkeys(i for i in ids if i is not None))


def sequence_ids(ids: Iterable[str | None]) -> list[int]:
    """
    The ids that could collide with a generated one: plain digit strings in bigint range.
    Other ids (e.g. `A-17`) are stored as-is and never compete with the sequence.
    """
    out: list[int] = []
    for i in unique_ids(ids):
        if _SEQUENCE_ID_RE.fullmatch(i):
            out.append(int(i))
    return out


def flatten_batch(batch: EntityBatch) -> list[Mapping[str, Any]]:
    """Flatten an id-keyed batch: id-group insertion order, then order within each group."""
    return [payload for group in batch.values() for payload in group]


class EntityWriter:
    """
    Deletes and upserts against one whitelisted target table.

    Table/column identifiers are derived ONLY from the `TableWriteSpec`.
    Values are always parameterized.
    """

    def __init__(self, conn: Connection, *, spec: TableWriteSpec, counters: ImportCounters) -> None:
        self.conn = conn
        self.spec = spec
        self.counters = counters

    def delete_by_ids(self, ids: Iterable[str | None]) -> WriteResult:
        """
        Delete every row whose id is one of `ids` with a single statement.

        - no-op returning `ok=False` on an empty id list.
        - runs in a savepoint: a failing delete is rolled back on its own and reported
          as `ok=False`, the surrounding transaction stays usable.
        - `counters.deleted` grows by the rows actually removed.
        """
        targets = unique_ids(ids)
        if not targets:
            return WriteResult(ok=False)

        query = sql.SQL("DELETE FROM {tbl} WHERE {id} = ANY(%s::text[])").format(
            tbl=sql.Identifier(self.spec.table_name),
            id=sql.Identifier(self.spec.id_col),
        )

        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    cur.execute(query, (targets,))
                    affected = max(int(cur.rowcount), 0)
        except psycopg.Error as e:
            logger.warning("delete from %s failed for %d ids: %s", self.spec.table_name, len(targets), e)
            return WriteResult(ok=False, error=str(e))

        self.counters.deleted += affected
        logger.info("deleted %d rows from %s (%d ids requested)", affected, self.spec.table_name, len(targets))
        return WriteResult(ok=True, affected_rows=affected)

    def upsert_batch(self, batch: EntityBatch) -> WriteResult:
        """
        Insert the batch's payloads, overwriting on a conflicting id.

        Rows without an id take the next value of the id sequence. Repeated ids inside the
        batch are all written in order, the last one wins.
        Errors here are infra errors and propagate.
        """
        rows = flatten_batch(batch)
        if not rows:
            return WriteResult(ok=False)

        spec = self.spec
        numeric_ids = sequence_ids(r.get(spec.id_col) for r in rows)
        if numeric_ids:
            self._advance_id_sequence(numeric_ids)

        params: list[tuple[Any, ...]] = []
        for r in rows:
            tup: list[Any] = [r.get(spec.id_col)]
            for c in spec.value_columns:
                tup.append(r.get(c, ""))
            params.append(tuple(tup))

        with self.conn.cursor() as cur:
            cur.executemany(self._upsert_query(), params)  # sequential batch processing

        logger.info("upserted %d rows into %s", len(rows), spec.table_name)
        return WriteResult(ok=True, affected_rows=len(rows))

    def _upsert_query(self) -> sql.Composed:
        spec = self.spec
        cols = (spec.id_col,) + spec.value_columns

        # blank id -> next sequence value, as text
        id_expr = sql.SQL("COALESCE(%s::text, nextval(pg_get_serial_sequence({tbl_lit}, {id_lit}))::text)").format(
            tbl_lit=sql.Literal(spec.table_name),
            id_lit=sql.Literal(spec.id_col),
        )

        return sql.SQL(
            "INSERT INTO {tbl} ({cols}) VALUES ({id_expr}, {vals}) "
            "ON CONFLICT ({id}) DO UPDATE SET {updates}"
        ).format(
            tbl=sql.Identifier(spec.table_name),
            cols=sql.SQL(", ").join(sql.Identifier(c) for c in cols),
            id_expr=id_expr,
            vals=sql.SQL(", ").join(sql.Placeholder() for _ in spec.value_columns),
            id=sql.Identifier(spec.id_col),
            updates=sql.SQL(", ").join(
                sql.SQL("{c} = EXCLUDED.{c}").format(c=sql.Identifier(c)) for c in spec.value_columns
            ),
        )

    def _advance_id_sequence(self, numeric_ids: Sequence[int]) -> None:
        """Move the id sequence past the largest numeric id so generated ids never hit imported ones."""
        spec = self.spec
        query = sql.SQL(
            "WITH m AS (\n"
            "  SELECT GREATEST(\n"
            "    (SELECT COALESCE(MAX({id}::bigint), 0) FROM {tbl} WHERE {id} ~ {pattern}),\n"
            "    (SELECT COALESCE(MAX(x), 0) FROM unnest(%s::bigint[]) AS x)\n"
            "  ) AS v\n"
            ")\n"
            "SELECT setval(pg_get_serial_sequence({tbl_lit}, {id_lit}), GREATEST(v, 1), v > 0) FROM m"
        ).format(
            id=sql.Identifier(spec.id_col),
            tbl=sql.Identifier(spec.table_name),
            pattern=sql.Literal(_SEQUENCE_ID_PATTERN),
            tbl_lit=sql.Literal(spec.table_name),
            id_lit=sql.Literal(spec.id_col),
        )
        with self.conn.cursor() as cur:
            cur.execute(query, (list(numeric_ids),))
