from __future__ import annotations

from typing import Any, Mapping


def normalize_cell(v: Any) -> Any:
    """Transform pre-parsed cells from CSV into normalized shape (`str` stripped, `None` kept)."""
    if v is None:
        return None
    if isinstance(v, str):
        return v.strip()
    return v


def cell(row: Mapping[str, Any], column: str) -> Any:
    """
    Read `column` from `row`, defaulting to `""` when the key is missing.

    CSV rows with short lines come back from `csv.DictReader` with `None` values,
    those are also read as `""`.
    """
    v = row.get(column)
    return "" if v is None else v


def is_blank(v: Any) -> bool:
    """
    A value is blank when it is `None`, empty, or whitespace only.

    `"0"` is NOT blank here: a zip code or id of `0` is a real value.
    """
    v = normalize_cell(v)
    if v is None:
        return True
    if isinstance(v, str):
        return v == ""
    return False


def entity_id(row: Mapping[str, Any], id_column: str) -> str | None:
    """Returns the row's entity id as a stripped `str`, or `None` when absent (a new entity)."""
    v = cell(row, id_column)
    if is_blank(v):
        return None
    return str(normalize_cell(v))
