from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Any, ContextManager, Iterable, Mapping, Protocol, Sequence

from formdata_import.db.entity_writer import WriteResult, unique_ids
from formdata_import.db.table_specs import TableWriteSpec
from formdata_import.ingest.summary import ImportCounters
from formdata_import.parsing.aggregator import ErrorAggregator
from formdata_import.parsing.primitives import cell, entity_id
from formdata_import.parsing.types import Behavior
from formdata_import.parsing.validator import RowValidator

logger = logging.getLogger(__name__)


# one bunch = the `(row_number, row)` pairs yielded by one pull from the source
BunchSource = Iterable[Sequence[tuple[int, Mapping[str, Any]]]]


class EntityWriterProto(Protocol):
    """What the runner needs from a writer."""
    def delete_by_ids(self, ids: Iterable[str | None]) -> WriteResult: ...
    def upsert_batch(self, batch: Mapping[str | None, Sequence[Mapping[str, Any]]]) -> WriteResult: ...


class ImportRunner:
    """
    Orchestrates one import run:
      - walk bunches in source order, rows in bunch order,
      - validate each row (errors land in the shared `ErrorAggregator`),
      - build the id list and id-keyed payloads,
      - write at bunch boundaries (or once at the end for delete).

    The run always drains the whole source. Once the aggregator's termination
    threshold trips, rows are marked to skip but the scan goes on, so the error
    report covers every row.
    """

    def __init__(
        self,
        *,
        source: BunchSource,
        behavior: Behavior | str,
        spec: TableWriteSpec,
        aggregator: ErrorAggregator,
        validator: RowValidator,
        writer: EntityWriterProto,
        counters: ImportCounters | None = None,
        transaction: Any = None,
    ) -> None:
        self.source = source
        self.behavior = behavior
        self.spec = spec
        self.aggregator = aggregator
        self.validator = validator
        self.writer = writer
        self.counters = counters if counters is not None else ImportCounters()
        # factory for the block wrapping a replace bunch's delete + insert (e.g. `conn.transaction`)
        self._transaction = transaction
        self.processed = 0

    ## -- dispatch

    def run(self) -> bool:
        """Dispatch on the run behavior. An unrecognized behavior is a logged no-op that still succeeds."""
        behavior = self.behavior
        self.processed = 0
        if behavior == Behavior.delete:
            return self.delete_entities()
        if behavior == Behavior.replace or behavior == Behavior.append:
            self.save_and_replace_entities()
            return True

        logger.warning("unsupported behavior %r, nothing imported", behavior)
        return True

    def validate_all(self) -> bool:
        """
        Validation-only pass over the whole source. True when no row is invalid.
        Counts rows into `processed`; a later import pass re-counts from zero.
        """
        self.processed = 0
        for bunch in self.source:
            for row_number, row in bunch:
                self.processed += 1
                self.validator.validate(row, row_number)
        return self.aggregator.invalid_rows_count == 0

    ## -- delete flow

    def delete_entities(self) -> bool:
        """
        Collect the ids of every valid row across all bunches, then issue one delete.
        Returns whether that delete ran, `False` when no id was ever collected.
        """
        agg = self.aggregator
        ids: list[str] = []

        for bunch in self.source:
            for row_number, row in bunch:
                self.processed += 1
                self.validator.validate(row, row_number)

                if not agg.is_row_invalid(row_number):
                    row_id = entity_id(row, self.spec.id_col)
                    if row_id is not None:
                        ids.append(row_id)

                if agg.has_to_be_terminated():
                    agg.add_row_to_skip(row_number)

        if not ids:
            logger.info("delete: no ids collected, nothing to delete")
            return False

        return self.writer.delete_by_ids(unique_ids(ids)).ok

    ## -- replace / append flow

    def save_and_replace_entities(self) -> None:
        """
        Build payloads bunch by bunch and flush each bunch before reading the next,
        so payloads never pile up across the whole run.
        """
        agg = self.aggregator
        is_replace = self.behavior == Behavior.replace
        ids: list[str] = []      # run-wide, used by replace only

        for bunch in self.source:
            entity_list: dict[str | None, list[dict[str, Any]]] = {}

            for row_number, row in bunch:
                self.processed += 1
                if not self.validator.validate(row, row_number):
                    continue

                if agg.has_to_be_terminated():
                    agg.add_row_to_skip(row_number)
                    continue

                row_id = entity_id(row, self.spec.id_col)
                if row_id is not None:
                    ids.append(row_id)

                entity_list.setdefault(row_id, []).append(self._payload(row, row_id))

                if row_id is None:
                    self.counters.created += 1
                else:
                    self.counters.updated += 1

            if is_replace:
                self._replace_bunch(ids, entity_list)
            else:
                self.writer.upsert_batch(entity_list)

    def _replace_bunch(self, ids: Sequence[str], entity_list: Mapping[str | None, Sequence[Mapping[str, Any]]]) -> None:
        """Delete the ids seen so far, then insert this bunch, inside one transaction block."""
        with self._transaction_block():
            if ids:
                if not self.writer.delete_by_ids(unique_ids(ids)):
                    logger.warning("replace: delete failed, skipping insert of %d entities", len(entity_list))
                    return
            # no id collected yet: only new entities, nothing to replace
            self.writer.upsert_batch(entity_list)

    def _transaction_block(self) -> ContextManager[Any]:
        if self._transaction is None:
            return nullcontext()
        return self._transaction()

    def _payload(self, row: Mapping[str, Any], row_id: str | None) -> dict[str, Any]:
        """Column values restricted to the schema columns, in schema order."""
        out: dict[str, Any] = {}
        for c in self.spec.columns:
            out[c] = row_id if c == self.spec.id_col else cell(row, c)
        return out
