from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .aggregator import ErrorAggregator
from .primitives import cell, is_blank
from .types import ErrorCode


@dataclass(frozen=True, slots=True)
class RequiredField:
    """A column that must hold a non-blank value, and the code raised when it doesn't."""
    column: str
    code: ErrorCode


# checked in this order, every one of them, for every row
FORMDATA_REQUIRED_FIELDS: tuple[RequiredField, ...] = (
    RequiredField("first_name", ErrorCode.first_name_required),
    RequiredField("last_name", ErrorCode.last_name_required),
    RequiredField("gender", ErrorCode.gender_required),
    RequiredField("email", ErrorCode.email_required),
    RequiredField("adress1", ErrorCode.adress1_required),
    RequiredField("adress2", ErrorCode.adress2_required),
    RequiredField("city", ErrorCode.city_required),
    RequiredField("state", ErrorCode.state_required),
    RequiredField("zip_code", ErrorCode.zip_code_required),
    RequiredField("feedback", ErrorCode.feedback_required),
)


class RowValidator:
    """
    Validate one row at a time against required-field rules.

    Never raises: failures are registered into the shared `ErrorAggregator`
    and the outcome is the returned `bool`.
    """

    def __init__(
        self,
        aggregator: ErrorAggregator,
        required_fields: Sequence[RequiredField] = FORMDATA_REQUIRED_FIELDS,
    ) -> None:
        self.aggregator = aggregator
        self.required_fields = tuple(required_fields)
        self._validated_rows: set[int] = set()

    def validate(self, row: Mapping[str, Any], row_number: int) -> bool:
        """
        Run every required-field check (no short circuit), then report whether
        the row is usable.

        A row number already validated in this run is not re-checked, so errors
        are never registered twice when validation and import both walk the source.
        """
        if row_number in self._validated_rows:
            return not self.aggregator.is_row_invalid(row_number)

        for f in self.required_fields:
            if is_blank(cell(row, f.column)):
                self.aggregator.add_row_error(f.code, row_number)

        self._validated_rows.add(row_number)
        return not self.aggregator.is_row_invalid(row_number)
