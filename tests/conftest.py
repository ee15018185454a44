from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from formdata_import.db.table_specs import FORM_DATA
from formdata_import.logs import reset_logging


def _find_repo_root(start: Path) -> Path:
    marker = "pyproject.toml"
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / marker).exists():
            return p
    raise RuntimeError(f"Could not find repo root from: {start}")


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """The absolute path to the repo root (finds by walking up to `pyproject.toml`)."""
    return _find_repo_root(Path(__file__))


# every required field filled in
VALID_ROW: dict[str, str] = {
    "id": "",
    "first_name": "Jo",
    "last_name": "Doe",
    "gender": "F",
    "email": "j@x.com",
    "adress1": "1 St",
    "adress2": "Apt 2",
    "city": "NY",
    "state": "NY",
    "zip_code": "10001",
    "feedback": "ok",
}


@pytest.fixture()
def make_row() -> Callable[..., dict[str, Any]]:
    """Build a valid row, overriding any column via keyword args."""
    def _make(**overrides: Any) -> dict[str, Any]:
        row = dict(VALID_ROW)
        row.update(overrides)
        return row
    return _make


@pytest.fixture()
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write rows (dicts) under a header to a CSV file in `tmp_path`."""
    def _write(rows: list[dict[str, Any]], *, header: list[str] | None = None, name: str = "form_data.csv") -> Path:
        cols = header if header is not None else list(FORM_DATA.columns)
        lines = [",".join(cols)]
        for r in rows:
            lines.append(",".join(str(r.get(c, "")) for c in cols))
        p = tmp_path / name
        p.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return p
    return _write


@pytest.fixture(autouse=True)
def _fresh_logging() -> Iterator[None]:
    """Each test starts without a configured package logger."""
    reset_logging()
    yield
    reset_logging()
