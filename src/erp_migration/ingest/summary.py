from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class ParseSummary:
    """Per record type counts of one parse + post-process run."""
    record_type: str
    input_path: str
    rows: int
    parsed: int
    valid: int
    invalid: int
    run_id: UUID | None = None

    def render_one_line(self) -> str:
        """How each line of summary is formatted for the terminal."""
        line = f"{self.record_type}: rows={self.rows} parsed={self.parsed} valid={self.valid} invalid={self.invalid}"
        if self.run_id is not None:
            line += f" run_id={self.run_id}"
        return line
