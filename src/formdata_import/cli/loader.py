from __future__ import annotations

import logging
from pathlib import Path
from uuid import UUID

from psycopg import Connection

from formdata_import.db.entity_writer import EntityWriter
from formdata_import.db.error_writers import insert_import_errors
from formdata_import.db.import_runs import finish_import_run, insert_import_run, update_import_run_status
from formdata_import.importer.runner import ImportRunner
from formdata_import.ingest.readers import BUNCH_SIZE, BunchReader, read_csv_header
from formdata_import.ingest.summary import ImportCounters, ImportSummary
from formdata_import.parsing.aggregator import DEFAULT_ALLOWED_ERRORS, ErrorAggregator
from formdata_import.parsing.columns import ensure_columns
from formdata_import.parsing.registry import FORMDATA_ENTITY_CODE, EntitySpec, get_entity_spec
from formdata_import.parsing.types import Behavior, ValidationStrategy
from formdata_import.parsing.validator import RowValidator

logger = logging.getLogger(__name__)


def _prepare(input_path: Path, entity_code: str) -> EntitySpec:
    """Resolve the entity and check the source header before anything touches the DB."""
    spec = get_entity_spec(entity_code)
    ensure_columns(
        read_csv_header(input_path),
        valid_columns=spec.valid_columns,
        permanent_columns=spec.table.permanent_cols,
    )
    return spec


def _summary(
    *,
    run_id: UUID | None,
    spec: EntitySpec,
    behavior: Behavior | str,
    input_path: Path,
    runner: ImportRunner,
    aggregator: ErrorAggregator,
) -> ImportSummary:
    c = runner.counters
    return ImportSummary(
        run_id=run_id,
        entity_code=spec.entity_code,
        behavior=behavior.value if isinstance(behavior, Behavior) else str(behavior),
        input_path=str(input_path),
        processed=runner.processed,
        invalid=aggregator.invalid_rows_count,
        created=c.created,
        updated=c.updated,
        deleted=c.deleted,
        errors=aggregator.report(),
    )


def import_file(
    conn: Connection,
    *,
    input_path: Path,
    behavior: Behavior,
    entity_code: str = FORMDATA_ENTITY_CODE,
    bunch_size: int = BUNCH_SIZE,
    allowed_errors: int = DEFAULT_ALLOWED_ERRORS,
    strategy: ValidationStrategy = ValidationStrategy.stop_on_errors,
    validate_first: bool = False,
) -> ImportSummary:
    """
    End-to-end file import orchestrator:
      - check the CSV header against the entity's valid columns,
      - create an `import_runs` row (which is committed immediately),
      - optionally validate the whole file first (`validate_first`),
      - run the import (validate rows, delete/replace/append in bunches),
      - persist the error report into `import_errors`,
      - and update the run's `status` and counters.

    Raises `ColumnCheckError` on a bad header (before any DB write), and on infra
    related exceptions (DB issues/bad connection, failed inserts).
    Will not raise on invalid rows (they are reported instead).
    """
    spec = _prepare(input_path, entity_code)

    ## -- create run ledger, committed immediately
    run_id: UUID = insert_import_run(conn, input_path=input_path, entity_code=spec.entity_code, behavior=behavior.value)
    conn.commit()
    logger.info("import run %s started: %s %s from %s", run_id, spec.entity_code, behavior.value, input_path)

    aggregator = ErrorAggregator(strategy=strategy, allowed_errors=allowed_errors)
    counters = ImportCounters()
    runner = ImportRunner(
        source=BunchReader(input_path, bunch_size=bunch_size),
        behavior=behavior,
        spec=spec.table,
        aggregator=aggregator,
        validator=RowValidator(aggregator, spec.required_fields),
        writer=EntityWriter(conn, spec=spec.table, counters=counters),
        counters=counters,
        transaction=conn.transaction,
    )

    try:
        if validate_first and not runner.validate_all():
            logger.info("import run %s: %d invalid rows found before import", run_id, aggregator.invalid_rows_count)

        ok = runner.run()
        if not ok:
            logger.info("import run %s: nothing written", run_id)

        insert_import_errors(conn, run_id=run_id, errors=aggregator.errors())

        ## -- run success!
        finish_import_run(conn, run_id=run_id, status="succeeded", counters=counters)
        conn.commit()

    except Exception:
        logger.exception("import run %s failed", run_id)
        # revert all changes (excluding run ledger)
        conn.rollback()
        ## -- Update that the run failed (and separate txn)
        update_import_run_status(conn, run_id=run_id, status="failed")
        conn.commit()
        raise

    if aggregator.has_to_be_terminated():
        logger.warning(
            "error limit reached (%d errors, %d allowed): %d rows skipped",
            aggregator.errors_count,
            aggregator.allowed_errors,
            len(aggregator.skipped_rows),
        )

    # return for printing in cli terminal later
    return _summary(
        run_id=run_id,
        spec=spec,
        behavior=behavior,
        input_path=input_path,
        runner=runner,
        aggregator=aggregator,
    )


def check_file(
    *,
    input_path: Path,
    entity_code: str = FORMDATA_ENTITY_CODE,
    bunch_size: int = BUNCH_SIZE,
    allowed_errors: int = DEFAULT_ALLOWED_ERRORS,
    strategy: ValidationStrategy = ValidationStrategy.stop_on_errors,
) -> ImportSummary:
    """Validate a file without touching the DB. Counters stay at zero."""
    spec = _prepare(input_path, entity_code)

    aggregator = ErrorAggregator(strategy=strategy, allowed_errors=allowed_errors)
    runner = ImportRunner(
        source=BunchReader(input_path, bunch_size=bunch_size),
        behavior="check",
        spec=spec.table,
        aggregator=aggregator,
        validator=RowValidator(aggregator, spec.required_fields),
        writer=_NoWrites(),
    )

    runner.validate_all()

    return _summary(
        run_id=None,
        spec=spec,
        behavior="check",
        input_path=input_path,
        runner=runner,
        aggregator=aggregator,
    )


class _NoWrites:
    """Writer for validation-only runs; any write attempt is a bug."""

    def delete_by_ids(self, ids):
        raise RuntimeError("check runs never write")

    def upsert_batch(self, batch):
        raise RuntimeError("check runs never write")
