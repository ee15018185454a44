from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TableWriteSpec:
    """Whitelisted target-table contract used for safe SQL generation.

    Notes:
    - `columns` is the full valid column set in schema order, `id_col` included.
    - `id_col` is the primary key; upserts overwrite on conflict with it and deletes filter on it.
    - `permanent_cols` must appear in any source header.
    """
    table_name: str
    columns: tuple[str, ...]
    id_col: str
    permanent_cols: tuple[str, ...]

    @property
    def value_columns(self) -> tuple[str, ...]:
        """Every column except the id, in schema order."""
        return tuple(c for c in self.columns if c != self.id_col)


FORM_DATA = TableWriteSpec(
    table_name="form_data",
    # column-name spelling (`adress1`, `adress2`) is the external CSV contract
    columns=(
        "id",
        "first_name",
        "last_name",
        "gender",
        "email",
        "adress1",
        "adress2",
        "city",
        "state",
        "zip_code",
        "feedback",
    ),
    id_col="id",
    permanent_cols=("id",),
)


TABLE_SPECS: dict[str, TableWriteSpec] = {
    FORM_DATA.table_name: FORM_DATA,
}
