from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping


BUNCH_SIZE = 500        # config: increase or decrease.

# one row paired with its 1-based row number
NumberedRow = tuple[int, Mapping[str, Any]]
Bunch = list[NumberedRow]


def stream_csv_dict_rows(path: Path) -> Iterator[NumberedRow]:
    """
    Yields `(row_number, dict)` for CSV data rows.

    `row_number` is 1-based for the first real data row encountered, header is not counted.
    """
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        for i, row in enumerate(reader, start=1):
            # csv.DictReader returns dict[str, str | None]
            yield i, row    # pairs


def read_csv_header(path: Path) -> list[str]:
    """Returns the header names of a CSV file (empty list on an empty file)."""
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
    return [h.strip() for h in header] if header else []


def iter_bunches(rows: Iterable[NumberedRow], bunch_size: int) -> Iterator[Bunch]:
    """Chunk numbered rows into bunches of at most `bunch_size` (the last may be shorter)."""
    if bunch_size < 1:
        raise ValueError(f"bunch_size must be >= 1, got {bunch_size}")

    bunch: Bunch = []
    for pair in rows:
        bunch.append(pair)
        if len(bunch) >= bunch_size:
            yield bunch
            bunch = []
    if bunch:
        yield bunch


class BunchReader:
    """
    Lazy, finite source of row bunches for one CSV file.

    Iterating starts over from the top of the file every time, so the same reader
    can serve a validation pass and then the import pass of one run.
    `next_bunch()` pulls from a single open cursor and returns `None` once exhausted.
    """

    def __init__(self, path: Path, *, bunch_size: int = BUNCH_SIZE) -> None:
        if bunch_size < 1:
            raise ValueError(f"bunch_size must be >= 1, got {bunch_size}")
        self.path = path
        self.bunch_size = bunch_size
        self._cursor: Iterator[Bunch] | None = None

    def __iter__(self) -> Iterator[Bunch]:
        return iter_bunches(stream_csv_dict_rows(self.path), self.bunch_size)

    def next_bunch(self) -> Bunch | None:
        if self._cursor is None:
            self._cursor = iter(self)
        return next(self._cursor, None)
