from __future__ import annotations

import logging

from .types import ERROR_MESSAGES, ErrorCode, RowError, ValidationStrategy

logger = logging.getLogger(__name__)


DEFAULT_ALLOWED_ERRORS = 10


class ErrorAggregator:
    """
    Run-scoped collector of row errors.

    Answers the two questions the import flows ask for every row:
    - is row N invalid (has errors, or was marked to skip)?
    - must processing stop now (`has_to_be_terminated`)?

    Termination only ever marks rows to skip. The caller keeps reading the source,
    so the error report stays complete even after the threshold trips.
    """

    def __init__(
        self,
        *,
        strategy: ValidationStrategy = ValidationStrategy.stop_on_errors,
        allowed_errors: int = DEFAULT_ALLOWED_ERRORS,
    ) -> None:
        if allowed_errors < 0:
            raise ValueError(f"allowed_errors must be >= 0, got {allowed_errors}")
        self.strategy = strategy
        self.allowed_errors = allowed_errors
        self._errors: list[RowError] = []
        self._codes_by_row: dict[int, list[ErrorCode]] = {}
        self._skipped_rows: set[int] = set()

    def add_row_error(self, code: ErrorCode, row_number: int, message: str | None = None) -> None:
        """Record `code` against `row_number`. The same code is recorded once per row."""
        codes = self._codes_by_row.setdefault(row_number, [])
        if code in codes:
            return
        codes.append(code)
        self._errors.append(
            RowError(row_number=row_number, code=code, message=message or ERROR_MESSAGES.get(code, code.value))
        )

    def add_row_to_skip(self, row_number: int) -> None:
        if row_number not in self._skipped_rows:
            logger.debug("row %s marked to skip", row_number)
        self._skipped_rows.add(row_number)

    def is_row_skipped(self, row_number: int) -> bool:
        return row_number in self._skipped_rows

    def is_row_invalid(self, row_number: int) -> bool:
        """A row is invalid when it carries any error or was marked to skip."""
        return bool(self._codes_by_row.get(row_number)) or row_number in self._skipped_rows

    def has_to_be_terminated(self) -> bool:
        """
        True once the error count reaches `allowed_errors` under `stop_on_errors`.
        `skip_errors` never terminates.
        """
        if self.strategy is not ValidationStrategy.stop_on_errors:
            return False
        count = self.errors_count
        return count > 0 and count >= self.allowed_errors

    @property
    def errors_count(self) -> int:
        return len(self._errors)

    @property
    def invalid_rows_count(self) -> int:
        return len({n for n, codes in self._codes_by_row.items() if codes} | self._skipped_rows)

    @property
    def skipped_rows(self) -> frozenset[int]:
        return frozenset(self._skipped_rows)

    def errors(self) -> list[RowError]:
        """All recorded errors in registration order."""
        return list(self._errors)

    def report(self) -> dict[int, list[str]]:
        """Row number -> error codes, rows ascending."""
        return {
            n: [c.value for c in codes]
            for n, codes in sorted(self._codes_by_row.items())
            if codes
        }
