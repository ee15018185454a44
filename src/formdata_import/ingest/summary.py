from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping
from uuid import UUID


@dataclass
class ImportCounters:
    """Run-scoped write counters. Only ever increase."""
    created: int = 0        # valid rows without an id
    updated: int = 0        # valid rows with an id
    deleted: int = 0        # rows actually removed by delete calls


@dataclass(frozen=True)
class ImportSummary:
    """Schema for all per-run outputs surfaced to the caller."""
    run_id: UUID | None         # `None` for a validation-only check
    entity_code: str
    behavior: str
    input_path: str
    processed: int              # rows read from the source
    invalid: int                # rows with errors or marked to skip
    created: int
    updated: int
    deleted: int
    errors: Mapping[int, list[str]] = field(default_factory=dict)    # row number -> error codes

    @property
    def error_count(self) -> int:
        return sum(len(codes) for codes in self.errors.values())

    def render_one_line(self) -> str:
        """How each line of summary is formatted for the terminal."""
        return (
            f"{self.entity_code} ({self.behavior}): processed={self.processed} invalid={self.invalid} "
            f"created={self.created} updated={self.updated} deleted={self.deleted} "
            f"errors={self.error_count} run_id={self.run_id}"
        )

    def render_errors(self, limit: int = 20) -> list[str]:
        """One line per invalid row, capped at `limit` rows."""
        lines = [f"row {n}: {', '.join(codes)}" for n, codes in list(self.errors.items())[:limit]]
        rest = len(self.errors) - limit
        if rest > 0:
            lines.append(f"... and {rest} more invalid rows")
        return lines
