from __future__ import annotations

import argparse
import logging
from pathlib import Path

from formdata_import.cli.loader import check_file, import_file
from formdata_import.db.connect import connect
from formdata_import.db.initialize import db_init
from formdata_import.ingest.readers import BUNCH_SIZE
from formdata_import.logs import log_summary, setup_logging
from formdata_import.parsing.aggregator import DEFAULT_ALLOWED_ERRORS
from formdata_import.parsing.columns import ColumnCheckError
from formdata_import.parsing.registry import FORMDATA_ENTITY_CODE
from formdata_import.parsing.types import Behavior, ValidationStrategy, parse_behavior

logger = logging.getLogger(__name__)


def _add_run_options(p: argparse.ArgumentParser) -> None:
    """Options shared by `import` and `check`."""
    p.add_argument("--input", required=True, help="Path to the CSV file.")
    p.add_argument("--entity", default=FORMDATA_ENTITY_CODE, help="Entity type code.")
    p.add_argument("--bunch-size", type=int, default=BUNCH_SIZE, help="Rows per bunch.")
    p.add_argument("--allowed-errors", type=int, default=DEFAULT_ALLOWED_ERRORS, help="Error count that trips the threshold.")
    p.add_argument(
        "--strategy",
        default=ValidationStrategy.stop_on_errors.value,
        choices=[s.value for s in ValidationStrategy],
        help="stop_on_errors marks rows to skip once the threshold trips; skip_errors never does.",
    )


def main(argv: list[str] | None = None) -> int:
    """
    A CLI for bulk importing form data CSV files into Postgres.

    The `cmd` options are:
    ## import:
    Import a CSV file with one of the behaviors:
    - `delete`: delete every row whose id appears in the file,
    - `replace`: delete the file's ids, then insert its rows (bunch by bunch),
    - `append`: insert the file's rows, overwriting on a conflicting id.

    A results summary prints in the terminal upon completion of an import.

    ### Example usage:
    - `formdata-import import --input data/form_data.csv --behavior append`
    - `formdata-import check --input data/form_data.csv`

    ## check:
    Validate a file and print the error report. Nothing is written.

    ## db:
    - `init` (re)initializes the DB schema, `--sql` points at a file or a dir of `.sql` files.
    """
    p = argparse.ArgumentParser(prog="formdata-import")
    p.add_argument("--log-file", default=None, help="Append-only diagnostic log (default: $FORMDATA_LOG_FILE).")
    sub = p.add_subparsers(dest="cmd", required=True)

    # import cmd
    imp = sub.add_parser("import", help="Import a CSV file (delete / replace / append).")
    _add_run_options(imp)
    imp.add_argument("--behavior", required=True, choices=[b.value for b in Behavior])
    imp.add_argument("--validate-first", action="store_true", help="Validate the whole file before writing.")

    # check cmd
    chk = sub.add_parser("check", help="Validate a CSV file without writing.")
    _add_run_options(chk)

    # db cmd
    db = sub.add_parser("db", help="Database utilities.")
    db_sub = db.add_subparsers(dest="db_cmd", required=True)

    db_init_p = db_sub.add_parser("init", help="Initialize DB schema from SQL file(s).")
    db_init_p.add_argument("--sql", default="sql", help="Path to schema SQL file OR a directory of `.sql` files.")

    args = p.parse_args(argv)

    setup_logging(log_file=Path(args.log_file) if args.log_file else None)

    if args.cmd in ("import", "check"):
        input_path = Path(args.input)
        strategy = ValidationStrategy(args.strategy)
        try:
            if args.cmd == "import":
                with connect() as conn:
                    summary = import_file(
                        conn,
                        input_path=input_path,
                        behavior=parse_behavior(args.behavior),
                        entity_code=args.entity,
                        bunch_size=args.bunch_size,
                        allowed_errors=args.allowed_errors,
                        strategy=strategy,
                        validate_first=args.validate_first,
                    )
            else:
                summary = check_file(
                    input_path=input_path,
                    entity_code=args.entity,
                    bunch_size=args.bunch_size,
                    allowed_errors=args.allowed_errors,
                    strategy=strategy,
                )
        except ColumnCheckError as e:
            logger.error("column check failed for %s: %s", input_path, e)
            return 1

        for line in summary.render_errors():
            logger.warning(line)
        log_summary(summary.render_one_line())
        return 0

    if args.cmd == "db" and args.db_cmd == "init":
        db_init(sql_path=Path(args.sql))
        print(f"Initialized schema from {args.sql}")
        return 0

    return 2
