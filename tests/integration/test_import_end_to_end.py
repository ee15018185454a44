from __future__ import annotations

import psycopg
import pytest

from formdata_import.cli.loader import import_file
from formdata_import.parsing.columns import ColumnCheckError
from formdata_import.parsing.types import Behavior

pytestmark = pytest.mark.integration


def _table(conn) -> dict[str, tuple[str, str]]:
    rows = conn.execute("SELECT id, first_name, city FROM form_data ORDER BY id").fetchall()
    return {r[0]: (r[1], r[2]) for r in rows}


def test_append_inserts_new_and_overwrites_existing(conn, write_csv, make_row) -> None:
    p = write_csv([make_row(id="10", first_name="Ada"), make_row(id="", first_name="Bob")])
    first = import_file(conn, input_path=p, behavior=Behavior.append)

    assert (first.created, first.updated, first.deleted) == (1, 1, 0)
    table = _table(conn)
    assert table["10"] == ("Ada", "NY")
    # the generated id never collides with the imported one
    assert len(table) == 2
    assert min(int(i) for i in table if i != "10") > 10

    p2 = write_csv([make_row(id="10", first_name="Ada2")], name="again.csv")
    import_file(conn, input_path=p2, behavior=Behavior.append)
    assert _table(conn)["10"] == ("Ada2", "NY")

    status = conn.execute("SELECT status, created, updated FROM import_runs WHERE run_id = %s", (first.run_id,)).fetchone()
    assert status == ("succeeded", 1, 1)


def test_invalid_rows_are_reported_and_persisted(conn, write_csv, make_row) -> None:
    p = write_csv([make_row(id="1"), make_row(id="2", adress2="")])
    summary = import_file(conn, input_path=p, behavior=Behavior.append)

    assert summary.errors == {2: ["Adress2IsRequired"]}
    assert list(_table(conn)) == ["1"]

    rows = conn.execute(
        "SELECT row_number, error_code, message FROM import_errors WHERE run_id = %s",
        (summary.run_id,),
    ).fetchall()
    assert rows == [(2, "Adress2IsRequired", "The Adress 2 cannot be empty.")]


def test_replace_deletes_then_inserts(conn, write_csv, make_row) -> None:
    """Ids 5 (existing) and absent (new): delete {5}, insert both, created=1 updated=1."""
    seed = write_csv([make_row(id="5", first_name="Old")], name="seed.csv")
    import_file(conn, input_path=seed, behavior=Behavior.append)

    p = write_csv([make_row(id="5", first_name="New"), make_row(id="", first_name="Fresh")])
    summary = import_file(conn, input_path=p, behavior=Behavior.replace)

    assert (summary.created, summary.updated, summary.deleted) == (1, 1, 1)
    table = _table(conn)
    assert table["5"] == ("New", "NY")
    assert sorted(v[0] for v in table.values()) == ["Fresh", "New"]


def test_delete_removes_distinct_ids_once(conn, write_csv, make_row) -> None:
    """Two bunches with ids [1, 2, 1] -> deleted counts the rows really removed."""
    seed = write_csv([make_row(id="1"), make_row(id="3")], name="seed.csv")
    import_file(conn, input_path=seed, behavior=Behavior.append)

    p = write_csv([make_row(id="1"), make_row(id="2"), make_row(id="1")])
    summary = import_file(conn, input_path=p, behavior=Behavior.delete, bunch_size=2)

    assert summary.deleted == 1
    assert list(_table(conn)) == ["3"]


def test_bad_header_writes_nothing(conn, write_csv, make_row) -> None:
    p = write_csv([make_row()], header=["id", "first_name", "nickname"])
    with pytest.raises(ColumnCheckError):
        import_file(conn, input_path=p, behavior=Behavior.append)
    assert conn.execute("SELECT COUNT(*) FROM import_runs").fetchone()[0] == 0


def test_non_numeric_ids_are_written_like_any_other(conn, write_csv, make_row) -> None:
    """Ids are opaque: `A-17` is stored, and later bunches and generated ids still work."""
    p = write_csv([make_row(id="1"), make_row(id="2"), make_row(id="A-17"), make_row(id="")])
    summary = import_file(conn, input_path=p, behavior=Behavior.append, bunch_size=2)

    assert (summary.created, summary.updated) == (1, 3)
    table = _table(conn)
    assert {"1", "2", "A-17"} <= set(table)
    assert len(table) == 4
    (status,) = conn.execute("SELECT status FROM import_runs WHERE run_id = %s", (summary.run_id,)).fetchone()
    assert status == "succeeded"


def test_delete_with_an_unknown_id_still_removes_the_others(conn, write_csv, make_row) -> None:
    seed = write_csv([make_row(id="1"), make_row(id="2"), make_row(id="3")], name="seed.csv")
    import_file(conn, input_path=seed, behavior=Behavior.append)

    p = write_csv([make_row(id="1"), make_row(id="2"), make_row(id="x")])
    summary = import_file(conn, input_path=p, behavior=Behavior.delete)

    assert summary.deleted == 2
    assert list(_table(conn)) == ["3"]


def test_replace_with_a_non_numeric_id_keeps_later_bunches(conn, write_csv, make_row) -> None:
    p = write_csv([make_row(id="x", first_name="X"), make_row(id="7", first_name="Seven")])
    summary = import_file(conn, input_path=p, behavior=Behavior.replace, bunch_size=1)

    assert summary.updated == 2
    # the second bunch deletes the run-wide ids {x, 7} before inserting 7
    assert _table(conn) == {"7": ("Seven", "NY")}


def test_failed_insert_marks_run_failed(conn, write_csv, make_row, monkeypatch: pytest.MonkeyPatch) -> None:
    """Infra errors propagate, the run ledger records `failed` and earlier writes roll back."""
    from formdata_import.db.entity_writer import EntityWriter

    def broken_upsert(self, batch):
        raise psycopg.errors.QueryCanceled("canceling statement due to user request")

    monkeypatch.setattr(EntityWriter, "upsert_batch", broken_upsert)
    p = write_csv([make_row(id="abc")])
    with pytest.raises(psycopg.errors.QueryCanceled):
        import_file(conn, input_path=p, behavior=Behavior.append)

    (status,) = conn.execute("SELECT status FROM import_runs").fetchone()
    assert status == "failed"
    assert _table(conn) == {}
