from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence


class ColumnCheckError(ValueError):
    """The source header does not match the entity's valid column set."""


@dataclass(frozen=True, slots=True)
class ColumnCheck:
    """Outcome of comparing a source header against the valid columns."""
    unknown: tuple[str, ...]        # header columns the entity does not know
    missing: tuple[str, ...]        # permanent columns absent from the header

    @property
    def ok(self) -> bool:
        return not self.unknown and not self.missing

    def describe(self) -> str:
        parts: list[str] = []
        if self.unknown:
            parts.append(f"unknown columns: {list(self.unknown)}")
        if self.missing:
            parts.append(f"missing required columns: {list(self.missing)}")
        return "; ".join(parts) or "columns ok"


def check_columns(
    header: Iterable[str],
    *,
    valid_columns: Sequence[str],
    permanent_columns: Sequence[str] = (),
) -> ColumnCheck:
    """
    Check a header for unknown columns and missing permanent columns.

    Header names are stripped before comparison. Result order is deterministic
    (sorted unknowns, permanent-column order for missing).
    """
    names = {str(h).strip() for h in header}
    known = set(valid_columns)

    unknown = tuple(sorted(n for n in names - known if n))
    missing = tuple(c for c in permanent_columns if c not in names)
    return ColumnCheck(unknown=unknown, missing=missing)


def ensure_columns(header: Iterable[str], *, valid_columns: Sequence[str], permanent_columns: Sequence[str] = ()) -> None:
    """Raise `ColumnCheckError` when `check_columns` fails."""
    res = check_columns(header, valid_columns=valid_columns, permanent_columns=permanent_columns)
    if not res.ok:
        raise ColumnCheckError(res.describe())
