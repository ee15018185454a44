from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from formdata_import.db.table_specs import TABLE_SPECS, TableWriteSpec
from formdata_import.parsing.validator import FORMDATA_REQUIRED_FIELDS, RequiredField


@dataclass(frozen=True)
class EntitySpec:
    """Everything an import run needs to know about one entity type."""
    entity_code: str
    table: TableWriteSpec
    required_fields: Sequence[RequiredField]

    @property
    def valid_columns(self) -> tuple[str, ...]:
        return self.table.columns


FORMDATA_ENTITY_CODE = "formdata"

# entity code -> (target table name, required-field rules)
ENTITY_TYPES: dict[str, tuple[str, Sequence[RequiredField]]] = {
    FORMDATA_ENTITY_CODE: ("form_data", FORMDATA_REQUIRED_FIELDS),
}


def get_entity_spec(entity_code: str) -> EntitySpec:
    """
    A registry that assigns an entity type code its target table and validation rules.
    """
    try:
        table_name, required_fields = ENTITY_TYPES[entity_code]
    except KeyError:
        raise ValueError(f"Unknown entity_code: {entity_code}") from None

    return EntitySpec(
        entity_code=entity_code,
        table=TABLE_SPECS[table_name],
        required_fields=required_fields,
    )
